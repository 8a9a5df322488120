"""Tests for resolving text under a screen-space rectangle."""

from __future__ import annotations

import itertools

import pytest

from pdfstruct._region import find_text_in_region, sort_reading_order
from pdfstruct._types import BoundingBox
from tests.helpers.fake_document import page_result, raw_item


def _page(scale: float = 1.0):
    return page_result(
        1,
        [
            raw_item("Hello", 72, 700),
            raw_item("world", 200, 700),
            raw_item("Footnote", 72, 680),
        ],
        scale=scale,
    )


def test_rectangle_bounding_one_item_returns_its_text() -> None:
    page = _page()
    hello = page.items[0]

    result = find_text_in_region(
        page.items, BoundingBox(x=72, y=82, width=25, height=10), page.height
    )

    assert result.text == "Hello"
    assert result.items == (hello,)
    box = result.bounding_box
    assert box.x == pytest.approx(hello.x, abs=1)
    assert box.y == pytest.approx(hello.y, abs=1)
    assert box.width == pytest.approx(hello.width, abs=1)
    assert box.height == pytest.approx(hello.height, abs=1)


def test_region_drawn_at_scale_maps_back_to_pdf_space() -> None:
    page = _page(scale=2.0)

    result = find_text_in_region(
        page.items,
        BoundingBox(x=144, y=164, width=50, height=20),
        page.height,
        scale=2.0,
    )

    assert result.text == "Hello"
    assert result.bounding_box == BoundingBox(x=72, y=700, width=25, height=10)


def test_matches_are_merged_in_reading_order() -> None:
    page = _page()

    result = find_text_in_region(
        page.items, BoundingBox(x=0, y=0, width=612, height=792), page.height
    )

    assert result.text == "Hello world Footnote"
    assert result.bounding_box == BoundingBox(x=72, y=680, width=153, height=30)


def test_touching_edges_do_not_intersect() -> None:
    page = _page()

    # PDF-space x range [97, 120) starts exactly at the right edge of "Hello".
    result = find_text_in_region(
        page.items, BoundingBox(x=97, y=82, width=23, height=10), page.height
    )

    assert result.text == ""
    assert result.items == ()


def test_no_match_falls_back_to_query_rectangle_in_pdf_space() -> None:
    page = _page()

    result = find_text_in_region(
        page.items, BoundingBox(x=400, y=10, width=50, height=40), page.height
    )

    assert result.text == ""
    assert result.bounding_box == BoundingBox(x=400, y=742, width=50, height=40)


def test_same_line_tolerance_orders_by_x() -> None:
    page = page_result(
        1,
        [
            raw_item("below", 72, 650),
            raw_item("right", 150, 700.5),
            raw_item("left", 72, 701.5),
        ],
    )

    ordered = sort_reading_order(page.items)

    assert [item.text for item in ordered] == ["left", "right", "below"]


def test_lines_further_apart_than_tolerance_order_top_down() -> None:
    page = page_result(1, [raw_item("lower", 10, 700), raw_item("upper", 300, 703)])

    ordered = sort_reading_order(page.items)

    assert [item.text for item in ordered] == ["upper", "lower"]


def test_chained_tolerance_order_does_not_depend_on_input_order() -> None:
    items = page_result(
        1,
        [
            raw_item("bottom", 10, 10),
            raw_item("middle", 50, 11.5),
            raw_item("top", 90, 13),
        ],
    ).items

    orders = {
        tuple(item.text for item in sort_reading_order(permutation))
        for permutation in itertools.permutations(items)
    }

    assert orders == {("middle", "top", "bottom")}


def test_merged_text_is_whitespace_normalized() -> None:
    page = page_result(1, [raw_item("a", 10, 700), raw_item("b", 30, 700)])

    result = find_text_in_region(
        page.items, BoundingBox(x=0, y=0, width=612, height=792), page.height
    )

    assert result.text == "a b"
