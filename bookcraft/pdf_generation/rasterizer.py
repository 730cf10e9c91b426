"""
Renders the cover and each section into a fixed-width bitmap for export.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

import requests
from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError
from reportlab.graphics.shapes import Drawing
from svglib.svglib import svg2rlg

from bookcraft.pipeline.models import Project, Section

logger = logging.getLogger(__name__)

RASTER_WIDTH = 800
RASTER_SCALE = 2
COVER_HEIGHT = 1120
SECTION_MIN_HEIGHT = 1000
ILLUSTRATION_HEIGHT = 400
PADDING = 64

DIAGRAM_MARKER = "[Diagram]"

BACKGROUND = (255, 255, 255)
COVER_BACKGROUND = (15, 23, 42)
HEADING_COLOR = (15, 23, 42)
BODY_COLOR = (51, 65, 85)
COVER_TITLE_COLOR = (255, 255, 255)
COVER_SUBTITLE_COLOR = (203, 213, 225)

_SVG_BLOCK = re.compile(r"```svg\s*([\s\S]*?)```", re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```.*$")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_EMPHASIS = re.compile(r"(\*\*|__|\*|_|`)")
_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET = re.compile(r"^\s*[-*+]\s+")

_FONT_CANDIDATES = {
    False: ("DejaVuSerif.ttf", "Georgia.ttf", "LiberationSerif-Regular.ttf"),
    True: ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf"),
}


@dataclass(frozen=True)
class TextBlock:
    text: str
    heading: bool = False
    svg: str | None = None

    @property
    def is_diagram(self) -> bool:
        return self.svg is not None


@dataclass(frozen=True)
class DiagramOverlay:
    """A vector diagram positioned on a bitmap, in bitmap pixels."""

    drawing: Drawing
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class RenderedBitmap:
    """
    A rasterized cover or section plus the diagrams to draw over it.

    Diagrams keep their vector form; the bitmap reserves blank space for them.
    """

    image: Image.Image
    diagrams: tuple[DiagramOverlay, ...] = ()

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def markdown_to_blocks(markdown: str) -> list[TextBlock]:
    """
    Flatten section Markdown into plain paragraphs, headings and diagrams.

    Each ```svg fence becomes one diagram block carrying the SVG source, with
    ``[Diagram]`` as its text for when the SVG cannot be drawn.
    """
    blocks: list[TextBlock] = []
    text = markdown or ""
    position = 0
    for match in _SVG_BLOCK.finditer(text):
        blocks.extend(_text_blocks(text[position:match.start()]))
        blocks.append(TextBlock(DIAGRAM_MARKER, svg=match.group(1).strip()))
        position = match.end()
    blocks.extend(_text_blocks(text[position:]))
    return blocks


def _text_blocks(text: str) -> list[TextBlock]:
    blocks: list[TextBlock] = []
    paragraph: list[str] = []

    def _flush() -> None:
        if paragraph:
            blocks.append(TextBlock(" ".join(paragraph)))
            paragraph.clear()

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or _CODE_FENCE.match(line):
            _flush()
            continue
        line = _EMPHASIS.sub("", _LINK.sub(r"\1", line))
        heading = _HEADING.match(line)
        if heading:
            _flush()
            blocks.append(TextBlock(heading.group(2).strip(), heading=True))
        elif _BULLET.match(raw_line):
            _flush()
            item = _EMPHASIS.sub("", _LINK.sub(r"\1", _BULLET.sub("", raw_line)))
            blocks.append(TextBlock("• " + item.strip()))
        else:
            paragraph.append(line)
    _flush()
    return blocks


def load_svg_drawing(source: str | None) -> Optional[Drawing]:
    """
    Parse SVG markup into a ReportLab drawing, or ``None`` if it cannot be used.
    """
    if not source:
        return None
    try:
        drawing = svg2rlg(BytesIO(source.encode("utf-8")))
    except Exception as exc:
        logger.warning("Could not parse SVG diagram: %s", exc)
        return None
    if drawing is None or drawing.width <= 0 or drawing.height <= 0:
        logger.warning("SVG diagram has no drawable area; using a text marker instead.")
        return None
    return drawing


def load_image_ref(ref: str | None, *, request_timeout: float = 30.0) -> Optional[Image.Image]:
    """
    Resolve an illustration handle (``data:`` URI, URL, or local path) to an image.

    Unreadable handles are logged and yield ``None`` so export can continue.
    """
    if not ref:
        return None

    try:
        if ref.startswith("data:"):
            _, _, encoded = ref.partition(",")
            payload = base64.b64decode(encoded, validate=False)
        elif ref.lower().startswith(("http://", "https://")):
            response = requests.get(ref, timeout=request_timeout)
            response.raise_for_status()
            payload = response.content
        else:
            payload = Path(ref).expanduser().read_bytes()
        image = Image.open(BytesIO(payload))
        image.load()
    except (binascii.Error, requests.RequestException, OSError, UnidentifiedImageError) as exc:
        logger.warning("Could not load image %s: %s", ref[:64], exc)
        return None
    return image.convert("RGB")


class SectionRasterizer:
    """
    Draws export bitmaps at a fixed pixel width and a content-dependent height.
    """

    def __init__(
        self,
        *,
        width: int = RASTER_WIDTH,
        scale: int = RASTER_SCALE,
        request_timeout: float = 30.0,
    ) -> None:
        if width <= 0 or scale <= 0:
            raise ValueError("Raster width and scale must be positive.")
        self.width = width * scale
        self.scale = scale
        self.request_timeout = request_timeout

        self.title_font = self._load_font(48, bold=True)
        self.subtitle_font = self._load_font(24, bold=False)
        self.heading_font = self._load_font(36, bold=True)
        self.subheading_font = self._load_font(24, bold=True)
        self.body_font = self._load_font(18, bold=False)

    # ------------------------------------------------------------------ cover

    def render_cover(self, project: Project) -> Image.Image:
        height = COVER_HEIGHT * self.scale
        canvas = Image.new("RGB", (self.width, height), COVER_BACKGROUND)
        art_height = height * 2 // 3

        cover = load_image_ref(project.cover_image_ref, request_timeout=self.request_timeout)
        if cover is not None:
            canvas.paste(ImageOps.fit(cover, (self.width, art_height)), (0, 0))

        draw = ImageDraw.Draw(canvas)
        padding = PADDING * self.scale
        inner_width = self.width - 2 * padding

        lines = self._wrap(draw, project.title, self.title_font, inner_width)
        author = project.config.author_name.upper()
        if author:
            author_lines = self._wrap(draw, author, self.subtitle_font, inner_width)
        else:
            author_lines = []

        block_height = self._line_height(self.title_font) * len(lines)
        block_height += self._line_height(self.subtitle_font) * len(author_lines)
        y = art_height + max(padding // 2, (height - art_height - block_height) // 2)

        for line in lines:
            self._draw_centered(draw, line, self.title_font, y, COVER_TITLE_COLOR)
            y += self._line_height(self.title_font)
        for line in author_lines:
            self._draw_centered(draw, line, self.subtitle_font, y, COVER_SUBTITLE_COLOR)
            y += self._line_height(self.subtitle_font)
        return canvas

    # ------------------------------------------------------------------ sections

    def render_section(self, project: Project, index: int, section: Section) -> RenderedBitmap:
        padding = PADDING * self.scale
        inner_width = self.width - 2 * padding
        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

        label = project.config.format.section_label
        heading_lines = self._wrap(measure, f"{label} {index + 1}: {section.title}", self.heading_font, inner_width)

        body: list[tuple[str, ImageFont.ImageFont, int, Optional[Drawing]]] = []
        for block in markdown_to_blocks(section.content or ""):
            font = self.subheading_font if block.heading else self.body_font
            drawing = load_svg_drawing(block.svg) if block.is_diagram else None
            if drawing is not None:
                diagram_width = min(inner_width, int(drawing.width * self.scale))
                diagram_height = max(1, int(drawing.height * diagram_width / drawing.width))
                body.append(("", font, diagram_height, drawing))
            else:
                for line in self._wrap(measure, block.text, font, inner_width):
                    body.append((line, font, self._line_height(font), None))
            body.append(("", font, self._line_height(font) // 2, None))

        illustration = load_image_ref(section.illustration_ref, request_timeout=self.request_timeout)
        illustration_height = ILLUSTRATION_HEIGHT * self.scale if illustration is not None else 0

        heading_height = self._line_height(self.heading_font) * len(heading_lines)
        gap = 32 * self.scale
        content_height = padding + heading_height + gap
        if illustration_height:
            content_height += illustration_height + gap
        content_height += sum(entry[2] for entry in body) + padding
        height = max(SECTION_MIN_HEIGHT * self.scale, content_height)

        canvas = Image.new("RGB", (self.width, height), BACKGROUND)
        draw = ImageDraw.Draw(canvas)

        y = padding
        for line in heading_lines:
            draw.text((padding, y), line, font=self.heading_font, fill=HEADING_COLOR)
            y += self._line_height(self.heading_font)
        y += gap

        if illustration is not None:
            canvas.paste(ImageOps.fit(illustration, (inner_width, illustration_height)), (padding, y))
            y += illustration_height + gap

        diagrams: list[DiagramOverlay] = []
        for line, font, line_height, drawing in body:
            if drawing is not None:
                diagram_width = min(inner_width, int(drawing.width * self.scale))
                diagrams.append(
                    DiagramOverlay(
                        drawing=drawing,
                        x=padding + (inner_width - diagram_width) // 2,
                        y=y,
                        width=diagram_width,
                        height=line_height,
                    )
                )
            elif line:
                draw.text((padding, y), line, font=font, fill=BODY_COLOR)
            y += line_height
        return RenderedBitmap(image=canvas, diagrams=tuple(diagrams))

    def render_project(self, project: Project) -> list[RenderedBitmap]:
        """Cover first, then one bitmap per section in document order."""
        bitmaps = [RenderedBitmap(image=self.render_cover(project))]
        for index, section in enumerate(project.sections):
            bitmaps.append(self.render_section(project, index, section))
        return bitmaps

    # ------------------------------------------------------------------ helpers

    def _load_font(self, size: int, *, bold: bool) -> ImageFont.ImageFont:
        pixel_size = size * self.scale
        for candidate in _FONT_CANDIDATES[bold]:
            try:
                return ImageFont.truetype(candidate, pixel_size)
            except OSError:
                continue
        return ImageFont.load_default(size=pixel_size)

    @staticmethod
    def _line_height(font: ImageFont.ImageFont) -> int:
        _, top, _, bottom = font.getbbox("Ag")
        return int((bottom - top) * 1.6) + 1

    @staticmethod
    def _wrap(
        draw: ImageDraw.ImageDraw,
        text: str,
        font: ImageFont.ImageFont,
        max_width: int,
    ) -> list[str]:
        words = text.split()
        if not words:
            return []
        lines: list[str] = []
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if draw.textlength(candidate, font=font) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
        return lines

    def _draw_centered(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        font: ImageFont.ImageFont,
        y: int,
        fill: tuple[int, int, int],
    ) -> None:
        text_width = draw.textlength(text, font=font)
        draw.text(((self.width - text_width) / 2, y), text, font=font, fill=fill)
