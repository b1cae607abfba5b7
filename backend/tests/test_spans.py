import math

import pytest

from slotlayout.domain.layout.spans import (
    col_span_from_drag,
    grid_layout,
    normalize_span,
    resize_element,
    row_span_from_drag,
)

EXTREME_DELTAS = [0, 1, -1, 24.9, 25, -25, 1e6, -1e6, 1e308, -1e308, math.inf, -math.inf, math.nan]


def test_col_span_moves_by_whole_cells():
    assert col_span_from_drag(3, 100, 50) == 5
    assert col_span_from_drag(3, -100, 50) == 1
    assert col_span_from_drag(6, 20, 50) == 6


def test_half_cell_rounds_up():
    assert col_span_from_drag(4, 25, 50) == 5
    assert row_span_from_drag(2, 75, 50) == 4


def test_row_span_saturates_at_grid_height():
    assert row_span_from_drag(4, 1000, 10) == 4
    assert row_span_from_drag(1, -1000, 10) == 1


@pytest.mark.parametrize("start", range(1, 13))
@pytest.mark.parametrize("delta", EXTREME_DELTAS)
def test_col_span_always_within_grid(start, delta):
    span = col_span_from_drag(start, delta, 40)
    assert isinstance(span, int)
    assert 1 <= span <= 12


@pytest.mark.parametrize("start", range(1, 5))
@pytest.mark.parametrize("delta", EXTREME_DELTAS)
def test_row_span_always_within_grid(start, delta):
    span = row_span_from_drag(start, delta, 60)
    assert isinstance(span, int)
    assert 1 <= span <= 4


def test_infinite_delta_saturates_in_its_direction():
    assert col_span_from_drag(5, math.inf, 40) == 12
    assert col_span_from_drag(5, -math.inf, 40) == 1


def test_degenerate_cell_size_keeps_start_span():
    assert col_span_from_drag(7, 500, 0) == 7
    assert row_span_from_drag(3, 500, -10) == 3
    assert col_span_from_drag(20, 500, 0) == 12


def test_normalize_span():
    assert normalize_span({"col": 40, "row": 0}, (12, 1)) == (12, 1)
    assert normalize_span({"col": 3.6, "row": "x"}, (12, 2)) == (4, 2)
    assert normalize_span(None, (6, 3)) == (6, 3)
    assert normalize_span({"col": True, "row": 2}, (8, 1)) == (8, 2)


def test_grid_layout_primitives():
    layout = grid_layout(4, 2)
    assert layout["className"] == "col-span-4 row-span-2"
    assert layout["gridColumn"] == "span 4 / span 4"
    assert grid_layout(99, -3)["className"] == "col-span-12 row-span-1"


class TestResizeElement:
    def test_icon_moves_proportionally(self):
        size = resize_element("icon", (24, 24), (10, 20))
        assert (size.width, size.height) == (39, 39)

    def test_icon_respects_bounds_per_dimension(self):
        size = resize_element("icon", (24, 24), (10, 20), {"width": (16, 32), "height": (16, 64)})
        assert (size.width, size.height) == (32, 39)

    def test_button_font_follows_height(self):
        assert resize_element("button", (100, 40), (0, 10)).font_size == 20
        assert resize_element("button", (100, 40), (0, -20)).font_size == 12
        assert resize_element("button", (100, 30), (0, 7.5)).font_size == 15

    def test_button_height_is_clamped_before_font_size(self):
        size = resize_element("button", (100, 40), (0, 500), {"height": (20, 60)})
        assert size.height == 60
        assert size.font_size == 20

    def test_other_elements_resize_independently(self):
        size = resize_element("image", (200, 100), (-50, 30), {"width": (160, 400)})
        assert (size.width, size.height) == (160, 130)
        assert size.font_size is None

    def test_to_dict(self):
        assert resize_element("button", (100, 40), (0, 0)).to_dict() == {"width": 100, "height": 40, "fontSize": 16}
