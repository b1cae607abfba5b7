from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from slotlayout.utils.json_safe import json_copy

# Keys that change on every save without changing the layout itself
VOLATILE_KEYS = ("timestamp", "metadata")

_MISSING = object()


@dataclass(frozen=True)
class Change:
    path: str
    kind: str  # added | removed | changed
    before: Any = None
    after: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "kind": self.kind, "before": self.before, "after": self.after}


def flatten(value: Any, prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested mappings into ``/``-separated paths (slot keys already
    contain dots). Empty mappings vanish; lists are compared as whole values
    so a reorder shows up as one change.
    """
    if not isinstance(value, Mapping):
        return {prefix: value} if prefix else {}

    flat: Dict[str, Any] = {}
    for key, child in value.items():
        path = f"{prefix}/{key}" if prefix else str(key)
        if isinstance(child, Mapping):
            flat.update(flatten(child, path))
        else:
            flat[path] = child
    return flat


def layout_content(config: Any) -> Dict[str, Any]:
    if not isinstance(config, Mapping):
        return {}
    return {key: json_copy(value) for key, value in config.items() if key not in VOLATILE_KEYS}


def diff_configurations(before: Any, after: Any, *, include_volatile: bool = False) -> List[Change]:
    if include_volatile:
        base, modified = json_copy(before), json_copy(after)
    else:
        base, modified = layout_content(before), layout_content(after)

    base_flat = flatten(base if isinstance(base, Mapping) else {})
    modified_flat = flatten(modified if isinstance(modified, Mapping) else {})

    changes: List[Change] = []
    for path in sorted(set(base_flat) | set(modified_flat)):
        old = base_flat.get(path, _MISSING)
        new = modified_flat.get(path, _MISSING)
        if old is _MISSING:
            changes.append(Change(path, "added", after=new))
        elif new is _MISSING:
            changes.append(Change(path, "removed", before=old))
        elif old != new:
            changes.append(Change(path, "changed", before=old, after=new))
    return changes


def configurations_equal(a: Any, b: Any) -> bool:
    return layout_content(a) == layout_content(b)
