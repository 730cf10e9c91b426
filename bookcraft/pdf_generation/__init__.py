"""
PDF export: pagination of rendered bitmaps and ReportLab assembly.
"""

from .builder import PAGE_SIZES, ProjectPDFBuilder, default_output_name
from .pagination import PageGeometry, PagePlacement, paginate, paginate_bitmap
from .rasterizer import RenderedBitmap, SectionRasterizer

__all__ = [
    "PAGE_SIZES",
    "PageGeometry",
    "PagePlacement",
    "ProjectPDFBuilder",
    "RenderedBitmap",
    "SectionRasterizer",
    "default_output_name",
    "paginate",
    "paginate_bitmap",
]
