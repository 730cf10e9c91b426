"""Tests for bitmap rendering and PDF assembly."""

from __future__ import annotations

import base64
from io import BytesIO

import pytest
from PIL import Image

from bookcraft.outline import DocumentFormat, GenerationConfig, OutlineEntry
from bookcraft.pdf_generation import ProjectPDFBuilder, SectionRasterizer, default_output_name
from bookcraft.pdf_generation.rasterizer import load_image_ref, load_svg_drawing, markdown_to_blocks
from bookcraft.pipeline import Project


SVG_DIAGRAM = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="100">'
    '<rect x="10" y="10" width="180" height="80" fill="#336699"/></svg>'
)


def _png_data_uri(size=(32, 18), color=(200, 40, 40)) -> str:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def project() -> Project:
    project = Project.from_outline(
        GenerationConfig(topic="Rivers", author_name="Ada"),
        title="Rivers & Deltas",
        entries=[OutlineEntry("Source", "Springs"), OutlineEntry("Delta", "Mouths")],
    )
    project.cover_image_ref = _png_data_uri()
    project.sections[0].content = "## Springs\nWater **rises**.\n\n- one\n- two"
    project.sections[0].illustration_ref = _png_data_uri()
    project.sections[1].content = "Long text. " * 3000
    return project


class TestMarkdownToBlocks:
    def test_headings_bullets_and_emphasis(self):
        blocks = markdown_to_blocks("# Title\nSome *soft* and [linked](http://x) text.\n\n* item\n- other")

        assert blocks[0].heading and blocks[0].text == "Title"
        assert blocks[1].text == "Some soft and linked text."
        assert [b.text for b in blocks[2:]] == ["• item", "• other"]

    def test_svg_blocks_become_diagrams(self):
        blocks = markdown_to_blocks("Before\n```svg\n<svg></svg>\n```\nAfter")

        assert [b.text for b in blocks] == ["Before", "[Diagram]", "After"]
        assert blocks[1].is_diagram and blocks[1].svg == "<svg></svg>"
        assert not blocks[0].is_diagram

    def test_empty(self):
        assert markdown_to_blocks("") == []


class TestLoadImageRef:
    def test_data_uri(self):
        image = load_image_ref(_png_data_uri(size=(5, 4)))
        assert image.size == (5, 4)

    def test_unreadable_ref_returns_none(self, tmp_path):
        assert load_image_ref(str(tmp_path / "missing.png")) is None
        assert load_image_ref("data:image/png;base64,bm90IGFuIGltYWdl") is None
        assert load_image_ref(None) is None


class TestSectionRasterizer:
    def test_fixed_width_bitmaps(self, project):
        rasterizer = SectionRasterizer()
        bitmaps = rasterizer.render_project(project)

        assert len(bitmaps) == 3
        assert {bitmap.width for bitmap in bitmaps} == {1600}
        assert bitmaps[2].height > bitmaps[1].height

    def test_slide_label(self, project):
        project.config = GenerationConfig(topic="Rivers", format=DocumentFormat.SLIDE_DECK)
        bitmap = SectionRasterizer(width=400, scale=1).render_section(project, 0, project.sections[0])
        assert bitmap.width == 400


class TestProjectPDFBuilder:
    def test_page_count_follows_pagination(self, tmp_path):
        builder = ProjectPDFBuilder()
        content_ratio = builder.geometry.content_height / builder.geometry.content_width
        short = Image.new("RGB", (800, 400), "white")
        tall = Image.new("RGB", (800, int(800 * content_ratio * 2.5)), "white")
        output = tmp_path / "out" / "doc.pdf"

        pages = builder.build_from_bitmaps([short, tall], output)

        assert pages == 1 + 3
        assert output.read_bytes().startswith(b"%PDF")

    def test_build_project(self, project, tmp_path):
        output = tmp_path / "rivers.pdf"
        pages = ProjectPDFBuilder().build(project, output)

        assert pages >= 3
        assert output.stat().st_size > 0

    def test_build_from_yaml(self, project, tmp_path):
        source = tmp_path / "project.yaml"
        source.write_text(project.to_yaml(), encoding="utf-8")

        assert ProjectPDFBuilder().build_from_yaml(source, tmp_path / "x.pdf") >= 3

    def test_default_output_name(self, project):
        assert default_output_name(project) == "rivers___deltas.pdf"


class TestSvgDiagrams:
    def test_load_valid_svg(self):
        drawing = load_svg_drawing(SVG_DIAGRAM)

        assert drawing is not None
        assert (drawing.width, drawing.height) == (200, 100)

    def test_load_invalid_svg(self):
        assert load_svg_drawing("this is not svg") is None
        assert load_svg_drawing("") is None

    def test_section_reserves_space_for_diagram(self, project):
        section = project.sections[0]
        section.content = f"Intro.\n\n```svg\n{SVG_DIAGRAM}\n```\n\nOutro."

        rendered = SectionRasterizer().render_section(project, 0, section)

        assert len(rendered.diagrams) == 1
        diagram = rendered.diagrams[0]
        assert (diagram.width, diagram.height) == (400, 200)
        assert diagram.x == (rendered.width - 400) // 2
        assert 0 < diagram.y < rendered.height - diagram.height

    def test_unparseable_diagram_falls_back_to_marker(self, project):
        section = project.sections[0]
        section.content = "Intro.\n\n```svg\nthis is not svg\n```"

        rendered = SectionRasterizer().render_section(project, 0, section)

        assert rendered.diagrams == ()

    def test_diagram_is_exported(self, project, tmp_path):
        project.sections[1].content = ("Long text. " * 1500) + f"\n\n```svg\n{SVG_DIAGRAM}\n```\n"
        output = tmp_path / "diagram.pdf"

        pages = ProjectPDFBuilder().build(project, output)

        assert pages >= 3
        assert output.read_bytes().startswith(b"%PDF")
