"""
Grid/span math for slot resizing.

Pointer events call these on every movement, so everything here is pure and
saturating: no input, however large, produces a span outside the grid.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from slotlayout.domain.slots.registry import GRID_COLUMNS, GRID_ROWS

MIN_SPAN = 1

BUTTON_FONT_MIN = 12
BUTTON_FONT_MAX = 20
BUTTON_FONT_RATIO = 0.4

Bounds = Mapping[str, Tuple[float, float]]


def clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _cells_moved(pixel_delta: float, cell_size: float) -> Optional[int]:
    """
    Whole cells covered by a pixel delta. ``None`` means "saturate" and is
    returned for infinite deltas; NaN and degenerate cells move nothing.
    """
    if not cell_size or cell_size <= 0 or math.isnan(cell_size):
        return 0
    if math.isnan(pixel_delta):
        return 0
    if math.isinf(pixel_delta) or math.isinf(pixel_delta / cell_size):
        return None
    return round_half_up(pixel_delta / cell_size)


def _span_from_drag(start_span: int, pixel_delta: float, cell_size: float, maximum: int) -> int:
    start = int(clamp(MIN_SPAN, maximum, start_span))
    moved = _cells_moved(pixel_delta, cell_size)
    if moved is None:
        return maximum if pixel_delta > 0 else MIN_SPAN
    return int(clamp(MIN_SPAN, maximum, start + moved))


def col_span_from_drag(start_span: int, pixel_delta_x: float, cell_width_px: float) -> int:
    return _span_from_drag(start_span, pixel_delta_x, cell_width_px, GRID_COLUMNS)


def row_span_from_drag(start_span: int, pixel_delta_y: float, cell_height_px: float) -> int:
    return _span_from_drag(start_span, pixel_delta_y, cell_height_px, GRID_ROWS)


def normalize_span(value: Any, default: Tuple[int, int]) -> Tuple[int, int]:
    """
    Coerce a stored ``{"col": .., "row": ..}`` value into an in-range pair,
    falling back to ``default`` for anything unreadable.
    """
    col, row = default
    if isinstance(value, Mapping):
        col = _coerce_int(value.get("col"), col)
        row = _coerce_int(value.get("row"), row)
    return int(clamp(MIN_SPAN, GRID_COLUMNS, col)), int(clamp(MIN_SPAN, GRID_ROWS, row))


def _coerce_int(value: Any, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return round_half_up(value)
    return fallback


def grid_layout(col_span: int, row_span: int) -> Dict[str, str]:
    """Layout primitives for a span, consumed by the renderer host."""
    col = int(clamp(MIN_SPAN, GRID_COLUMNS, col_span))
    row = int(clamp(MIN_SPAN, GRID_ROWS, row_span))
    return {
        "gridColumn": f"span {col} / span {col}",
        "gridRow": f"span {row} / span {row}",
        "className": f"col-span-{col} row-span-{row}",
    }


# -------------------------------------------------
# Element-level resize (icon / button / image ...)
# -------------------------------------------------

@dataclass(frozen=True)
class ElementSize:
    width: float
    height: float
    font_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"width": self.width, "height": self.height}
        if self.font_size is not None:
            data["fontSize"] = self.font_size
        return data


def _bounded(bounds: Optional[Bounds], dimension: str, value: float) -> float:
    if math.isnan(value):
        value = 0.0
    if not bounds or dimension not in bounds:
        return max(0.0, value)
    low, high = bounds[dimension]
    return clamp(low, high, value)


def resize_element(
    element_type: str,
    start_size: Tuple[float, float],
    delta: Tuple[float, float],
    bounds: Optional[Bounds] = None,
) -> ElementSize:
    """
    Resize an element inside a slot.

    - icon: width and height move together by the average of both deltas
    - button: height first; font size follows the height
    - anything else: width and height independently

    ``bounds`` maps ``"width"``/``"height"`` to ``(min, max)``.
    """
    start_w, start_h = start_size
    dx, dy = delta

    if element_type == "icon":
        avg = (dx + dy) / 2
        return ElementSize(
            width=_bounded(bounds, "width", start_w + avg),
            height=_bounded(bounds, "height", start_h + avg),
        )

    if element_type == "button":
        height = _bounded(bounds, "height", start_h + dy)
        width = _bounded(bounds, "width", start_w + dx)
        font_size = round_half_up(clamp(BUTTON_FONT_MIN, BUTTON_FONT_MAX, BUTTON_FONT_RATIO * height))
        return ElementSize(width=width, height=height, font_size=font_size)

    return ElementSize(
        width=_bounded(bounds, "width", start_w + dx),
        height=_bounded(bounds, "height", start_h + dy),
    )
