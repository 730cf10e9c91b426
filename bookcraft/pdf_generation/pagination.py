"""
Slices tall rendered bitmaps into fixed-size pages.

Every input bitmap is scaled to the page's content width. A bitmap that fits
the content box gets one page; a taller one is repeated on as many pages as it
needs, translated upward by one content height per page so that only the next
band falls inside the content box. Source pixels are never cropped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

# Slack in page units (points). A remainder this small after the last full
# band is treated as rounding noise rather than another page.
_EPSILON = 1e-6


@dataclass(frozen=True)
class PageGeometry:
    width: float
    height: float
    margin: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Page width and height must be positive.")
        if self.margin < 0:
            raise ValueError("Page margin must not be negative.")
        if self.content_width <= 0 or self.content_height <= 0:
            raise ValueError("Page margin leaves no room for content.")

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.height - 2 * self.margin


@dataclass(frozen=True)
class PagePlacement:
    """
    Where to draw one bitmap on one output page.

    ``offset`` is how far the scaled image is shifted upward relative to the top
    margin. The part of the image between ``visible_top`` and ``visible_bottom``
    (measured from the image's top edge, in page units) is what the content box
    shows.
    """

    source_index: int
    page_in_source: int
    x: float
    top: float
    width: float
    height: float
    offset: float
    visible_top: float
    visible_bottom: float

    @property
    def visible_height(self) -> float:
        return self.visible_bottom - self.visible_top


def scaled_height(bitmap_width: float, bitmap_height: float, geometry: PageGeometry) -> float:
    if bitmap_width <= 0 or bitmap_height <= 0:
        raise ValueError("Bitmap dimensions must be positive.")
    return bitmap_height * geometry.content_width / bitmap_width


def page_count(height: float, content_height: float) -> int:
    """Pages needed for an image of ``height``; exact multiples add no trailing page."""
    if height <= content_height:
        return 1
    pages = max(1, math.ceil(height / content_height))
    while pages > 1 and height - (pages - 1) * content_height <= _EPSILON:
        pages -= 1
    while height - pages * content_height > _EPSILON:
        pages += 1
    return pages


def paginate_bitmap(
    bitmap_width: float,
    bitmap_height: float,
    geometry: PageGeometry,
    *,
    source_index: int = 0,
) -> list[PagePlacement]:
    height = scaled_height(bitmap_width, bitmap_height, geometry)
    band = geometry.content_height
    placements: list[PagePlacement] = []
    for page in range(page_count(height, band)):
        offset = page * band
        placements.append(
            PagePlacement(
                source_index=source_index,
                page_in_source=page,
                x=geometry.margin,
                top=geometry.margin - offset,
                width=geometry.content_width,
                height=height,
                offset=offset,
                visible_top=offset,
                visible_bottom=min(offset + band, height),
            )
        )
    return placements


def paginate(
    bitmap_sizes: Iterable[tuple[float, float]],
    geometry: PageGeometry,
) -> list[PagePlacement]:
    """
    Paginate an ordered sequence of ``(width, height)`` bitmaps.

    The result holds one placement per output page, in order. Each bitmap starts
    on a fresh page.
    """
    pages: list[PagePlacement] = []
    for index, (width, height) in enumerate(bitmap_sizes):
        pages.extend(paginate_bitmap(width, height, geometry, source_index=index))
    return pages

