"""Tests for slicing rendered bitmaps into fixed-size pages."""

from __future__ import annotations

import math

import pytest

from bookcraft.pdf_generation import PageGeometry, paginate, paginate_bitmap
from bookcraft.pdf_generation.pagination import page_count, scaled_height


@pytest.fixture
def geometry() -> PageGeometry:
    # 100 x 120 content box.
    return PageGeometry(width=120, height=140, margin=10)


class TestPageGeometry:
    def test_content_box(self, geometry):
        assert geometry.content_width == 100
        assert geometry.content_height == 120

    @pytest.mark.parametrize(
        "width,height,margin",
        [(0, 100, 0), (100, -1, 0), (100, 100, -5), (100, 100, 50)],
    )
    def test_invalid(self, width, height, margin):
        with pytest.raises(ValueError):
            PageGeometry(width=width, height=height, margin=margin)


class TestPaginateBitmap:
    def test_short_bitmap_gets_one_page_at_top_margin(self, geometry):
        placements = paginate_bitmap(200, 100, geometry)

        assert len(placements) == 1
        page = placements[0]
        assert page.x == 10
        assert page.top == 10
        assert page.width == 100
        assert page.height == pytest.approx(50)
        assert page.visible_height == pytest.approx(50)

    def test_exact_fit_is_one_page(self, geometry):
        assert len(paginate_bitmap(100, 120, geometry)) == 1

    def test_exact_multiple_has_no_trailing_page(self, geometry):
        placements = paginate_bitmap(100, 360, geometry)

        assert len(placements) == 3
        assert placements[-1].visible_height == pytest.approx(120)

    @pytest.mark.parametrize("bitmap_height", [121, 250, 359.5, 1000, 2437])
    def test_coverage_has_no_gaps_or_overlap(self, geometry, bitmap_height):
        placements = paginate_bitmap(100, bitmap_height, geometry)
        height = scaled_height(100, bitmap_height, geometry)

        assert len(placements) == math.ceil(height / geometry.content_height)
        assert placements[0].visible_top == 0
        for previous, current in zip(placements, placements[1:]):
            assert current.visible_top == pytest.approx(previous.visible_bottom)
        assert placements[-1].visible_bottom == pytest.approx(height)
        assert sum(p.visible_height for p in placements) == pytest.approx(height)

    def test_full_image_is_shifted_up_per_page(self, geometry):
        placements = paginate_bitmap(800, 2000, geometry)

        for page, placement in enumerate(placements):
            assert placement.page_in_source == page
            assert placement.height == pytest.approx(250)
            assert placement.offset == pytest.approx(page * 120)
            assert placement.top == pytest.approx(10 - page * 120)

    def test_rejects_empty_bitmap(self, geometry):
        with pytest.raises(ValueError):
            paginate_bitmap(0, 100, geometry)


class TestPaginate:
    def test_each_bitmap_starts_a_new_page(self, geometry):
        placements = paginate([(100, 50), (100, 50), (100, 300)], geometry)

        assert [p.source_index for p in placements] == [0, 1, 2, 2, 2]
        assert [p.page_in_source for p in placements] == [0, 0, 0, 1, 2]

    def test_page_count_rounding(self):
        assert page_count(0.5, 1) == 1
        assert page_count(3.0000000001, 1) == 3
        assert page_count(3.01, 1) == 4
        assert page_count(360.0000000001, 120) == 3
        assert page_count(360.00006, 120) == 4

    def test_sliver_past_a_full_band_is_still_covered(self, geometry):
        height = 120 * (3 + 5e-7)
        placements = paginate_bitmap(100, height, geometry)

        assert len(placements) == 4
        assert placements[-1].visible_top == pytest.approx(360)
        assert placements[-1].visible_bottom == pytest.approx(height, rel=0, abs=1e-9)
        assert placements[-1].visible_height > 1e-5
        assert sum(p.visible_height for p in placements) == pytest.approx(height, rel=0, abs=1e-9)
