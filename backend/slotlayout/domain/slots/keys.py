from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, order=True)
class SlotKey:
    """
    Structured address of a micro slot inside a major slot.

    Payload maps are keyed by the dotted form ``"majorId.microId"``; parse
    once at the edge and pass SlotKey values around instead of re-splitting.
    """

    major_id: str
    micro_id: str

    @classmethod
    def parse(cls, raw: str, major_id: Optional[str] = None) -> "SlotKey":
        """
        Parse ``"header.title"`` or, with ``major_id`` given, a bare
        ``"title"`` (the form stored in ``microSlotOrders``).
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError(f"Invalid slot key: {raw!r}")

        if major_id is not None:
            prefix = f"{major_id}."
            micro = raw[len(prefix):] if raw.startswith(prefix) else raw
            if not micro:
                raise ValueError(f"Invalid slot key: {raw!r}")
            return cls(major_id, micro)

        major, sep, micro = raw.partition(".")
        if not sep or not major or not micro:
            raise ValueError(f"Invalid slot key: {raw!r}")
        return cls(major, micro)

    @property
    def key(self) -> str:
        return f"{self.major_id}.{self.micro_id}"

    @property
    def is_custom(self) -> bool:
        return self.micro_id.startswith("custom_")

    def generic_id(self, page_type: str) -> str:
        # cart.flashmessage.content
        return f"{page_type}.{self.major_id}.{self.micro_id}".lower()

    def __str__(self) -> str:
        return self.key
