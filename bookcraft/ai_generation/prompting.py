"""
Prompt construction utilities for cover and section illustrations.
"""

from __future__ import annotations

from dataclasses import dataclass

from bookcraft.outline import DocumentFormat

COVER_ASPECT_RATIO = "3:4"

ILLUSTRATION_ASPECT_RATIOS = {
    DocumentFormat.DOCUMENT: "16:9",
    DocumentFormat.SLIDE_DECK: "4:3",
}

SUPPORTED_ASPECT_RATIOS = ("1:1", "3:4", "4:3", "16:9")


@dataclass(frozen=True)
class ImagePrompt:
    """Prompt text plus the aspect ratio requested from the image model."""

    positive: str
    aspect_ratio: str


def _format_label(document_format: DocumentFormat) -> str:
    return "slide deck" if document_format is DocumentFormat.SLIDE_DECK else "eBook"


def build_cover_prompt(
    title: str,
    style: str,
    document_format: DocumentFormat,
) -> ImagePrompt:
    """
    Build the cover prompt. Covers are portrait for both formats.
    """
    if not title or not title.strip():
        raise ValueError("title must be a non-empty string.")

    positive = (
        f'A professional, bestseller quality cover for a {_format_label(document_format)} '
        f'titled "{title.strip()}".\n'
        f"Style: {style}. Minimalist, high contrast, elegant composition, vector art or "
        "photorealistic depending on style.\n"
        "No text on image except abstract shapes or relevant symbolism."
    )
    return ImagePrompt(positive=positive, aspect_ratio=COVER_ASPECT_RATIO)


def build_section_illustration_prompt(
    section_title: str,
    style: str,
    document_format: DocumentFormat,
) -> ImagePrompt:
    """
    Build the editorial illustration prompt for a single section.
    """
    if not section_title or not section_title.strip():
        raise ValueError("section_title must be a non-empty string.")

    positive = (
        f'An editorial illustration for a section titled "{section_title.strip()}".\n'
        f"Style: {style}. Artistic, evocative, clean lines."
    )
    return ImagePrompt(
        positive=positive,
        aspect_ratio=ILLUSTRATION_ASPECT_RATIOS[document_format],
    )
