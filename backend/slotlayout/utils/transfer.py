"""
Export/import of configuration payloads for backup and sharing.

The artifact is the bare configuration payload as JSON; ``version`` is
written back exactly as stored.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from slotlayout.domain.exceptions import ValidationFailed
from slotlayout.domain.invariants.auto_fix import auto_fix_configuration
from slotlayout.domain.invariants.configuration import validate_configuration
from slotlayout.domain.migration.legacy import load_configuration
from slotlayout.domain.slots.registry import PageTypeSchema
from slotlayout.utils.json_safe import MAX_DEPTH, find_cycle, find_excess_depth

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    configuration: Dict[str, Any]
    issues: List[str] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return bool(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {"configuration": self.configuration, "issues": list(self.issues), "repaired": self.repaired}


def export_configuration(configuration: Mapping[str, Any], *, indent: int = 2) -> str:
    if not isinstance(configuration, Mapping):
        raise ValidationFailed("Only configuration objects can be exported")
    cycle = find_cycle(configuration)
    if cycle:
        raise ValidationFailed("Configuration cannot be exported", [f"circular reference at {cycle}"])
    too_deep = find_excess_depth(configuration)
    if too_deep:
        raise ValidationFailed("Configuration cannot be exported", [f"nested deeper than {MAX_DEPTH} levels at {too_deep}"])
    return json.dumps(configuration, indent=indent, sort_keys=True, ensure_ascii=False)


def import_configuration(text: Any, schema: PageTypeSchema) -> ImportResult:
    """
    Parse an exported artifact and make it acceptable for a draft.

    Issues found by the validator are returned alongside the repaired
    configuration; only input that is not a JSON object is rejected.
    """
    if isinstance(text, (bytes, bytearray)):
        text = text.decode("utf-8", errors="replace")
    if not isinstance(text, str):
        raise ValidationFailed("Import payload must be JSON text")

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationFailed("Import payload is not valid JSON", [str(exc)]) from exc
    except RecursionError as exc:
        raise ValidationFailed("Import payload is nested too deeply") from exc

    if not isinstance(raw, dict):
        raise ValidationFailed(
            "Import payload must be a configuration object",
            [f"got {type(raw).__name__}"],
        )

    canonical = load_configuration(raw, schema.page_type)
    issues = validate_configuration(canonical, schema).errors
    fixed = auto_fix_configuration(canonical, schema)

    if issues:
        logger.info("Imported %s configuration repaired %d issue(s)", schema.page_type, len(issues))

    return ImportResult(configuration=fixed, issues=issues)
