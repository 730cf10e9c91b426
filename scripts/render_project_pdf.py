"""
Render a BookCraft project YAML into a paginated PDF.

Usage:
    python scripts/render_project_pdf.py \
        --project bookcraft_project.yaml \
        --output bookcraft_project.pdf
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on the Python path.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bookcraft import Project, ProjectPDFBuilder  # noqa: E402
from bookcraft.common.logging_config import setup_logging  # noqa: E402
from bookcraft.pdf_generation import PAGE_SIZES, SectionRasterizer, default_output_name  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a BookCraft project YAML into a PDF."
    )
    parser.add_argument(
        "--project",
        required=True,
        help="Path to the project YAML (output of run_full_pipeline.py).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Destination PDF file path (default: derived from the project title).",
    )
    parser.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES.keys()),
        default="a4",
        help="Page size to render (default: a4).",
    )
    parser.add_argument(
        "--margin-mm",
        type=float,
        default=10.0,
        help="Page margin in millimetres (default: 10).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Timeout in seconds for downloading illustration URLs (default: 30).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging()

    page_size: tuple[float, float] = PAGE_SIZES[args.page_size]
    project = Project.from_yaml(args.project)
    output = args.output or default_output_name(project)

    builder = ProjectPDFBuilder(
        page_size=page_size,
        margin_mm=args.margin_mm,
        rasterizer=SectionRasterizer(request_timeout=args.timeout),
    )
    pages = builder.build(project, output)

    print(f"Rendered {pages} pages to {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
