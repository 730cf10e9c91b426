"""
High-level utilities for exporting BookCraft projects into paginated PDFs.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

from PIL import Image
from reportlab.graphics import renderPDF
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from bookcraft.pipeline.models import Project

from .pagination import PageGeometry, PagePlacement, paginate
from .rasterizer import DiagramOverlay, RenderedBitmap, SectionRasterizer

logger = logging.getLogger(__name__)

PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
}

DEFAULT_MARGIN_MM = 10.0


def default_output_name(project: Project) -> str:
    """File name derived from the project title, e.g. ``my_title.pdf``."""
    stem = re.sub(r"[^a-z0-9]", "_", project.title, flags=re.IGNORECASE).lower()
    return f"{stem or 'document'}.pdf"


class ProjectPDFBuilder:
    """
    Render a project into a PDF of fixed-size pages.

    The cover and every section are rasterized at a fixed width, then each
    bitmap is laid out over as many pages as its scaled height needs. Long
    sections reuse the full bitmap on every page, shifted up and clipped to the
    content box. SVG diagrams are drawn as vector art over the space the
    rasterizer reserved for them.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = A4,
        margin_mm: float = DEFAULT_MARGIN_MM,
        rasterizer: SectionRasterizer | None = None,
    ) -> None:
        width, height = page_size
        self.page_size = page_size
        self.geometry = PageGeometry(width=width, height=height, margin=margin_mm * mm)
        self.rasterizer = rasterizer or SectionRasterizer()

    def build_from_yaml(self, project_path: Path | str, output_path: Path | str) -> int:
        project = Project.from_yaml(project_path)
        return self.build(project, output_path)

    def build(self, project: Project, output_path: Path | str) -> int:
        """Write the PDF and return the number of pages emitted."""
        bitmaps = self.rasterizer.render_project(project)
        return self.build_from_bitmaps(bitmaps, output_path)

    def build_from_bitmaps(
        self,
        bitmaps: Sequence[RenderedBitmap | Image.Image],
        output_path: Path | str,
    ) -> int:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        rendered = [
            bitmap if isinstance(bitmap, RenderedBitmap) else RenderedBitmap(image=bitmap)
            for bitmap in bitmaps
        ]
        placements = paginate([(bitmap.width, bitmap.height) for bitmap in rendered], self.geometry)
        readers = [ImageReader(bitmap.image) for bitmap in rendered]

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        for page_number, placement in enumerate(placements):
            if page_number:
                pdf.showPage()
            source = rendered[placement.source_index]
            self._draw_placement(pdf, readers[placement.source_index], source, placement)
        pdf.save()

        logger.info("Exported %d bitmaps as %d pages to %s", len(rendered), len(placements), output_file)
        return len(placements)

    def _draw_placement(
        self,
        pdf: canvas.Canvas,
        reader: ImageReader,
        source: RenderedBitmap,
        placement: PagePlacement,
    ) -> None:
        geometry = self.geometry
        page_height = geometry.height

        pdf.saveState()
        clip = pdf.beginPath()
        clip.rect(
            geometry.margin,
            geometry.margin,
            geometry.content_width,
            geometry.content_height,
        )
        pdf.clipPath(clip, stroke=0, fill=0)

        # ReportLab measures y from the bottom edge.
        bottom = page_height - placement.top - placement.height
        pdf.drawImage(reader, placement.x, bottom, placement.width, placement.height)

        factor = placement.width / source.width
        for diagram in source.diagrams:
            self._draw_diagram(pdf, diagram, placement, factor)
        pdf.restoreState()

    def _draw_diagram(
        self,
        pdf: canvas.Canvas,
        diagram: DiagramOverlay,
        placement: PagePlacement,
        factor: float,
    ) -> None:
        top = diagram.y * factor
        height = diagram.height * factor
        if top + height <= placement.visible_top or top >= placement.visible_bottom:
            return

        width = diagram.width * factor
        x = placement.x + diagram.x * factor
        y = self.geometry.height - (placement.top + top) - height

        pdf.saveState()
        pdf.translate(x, y)
        pdf.scale(width / diagram.drawing.width, height / diagram.drawing.height)
        renderPDF.draw(diagram.drawing, pdf, 0, 0)
        pdf.restoreState()
