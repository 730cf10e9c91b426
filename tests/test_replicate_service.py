"""Tests for the Replicate image wrapper and illustration prompts."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests

from bookcraft.ai_generation import (
    GeneratedImage,
    ImagePrompt,
    ReplicateImageGenerator,
    build_cover_prompt,
    build_section_illustration_prompt,
)
from bookcraft.common import CredentialError, ProviderCallError
from bookcraft.outline import DocumentFormat

PROMPT = ImagePrompt(positive="A river delta", aspect_ratio="16:9")


def _file_output(data: bytes, url: str = "https://replicate.delivery/out.webp"):
    return SimpleNamespace(read=lambda: data, url=url)


class TestReplicateImageGenerator:
    def test_missing_token_raises_credential_error(self, monkeypatch):
        monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
        generator = ReplicateImageGenerator()

        with pytest.raises(CredentialError):
            generator.generate_image(PROMPT)

    def test_flux_payload_and_file_output(self):
        client = MagicMock()
        client.run.return_value = [_file_output(b"img")]
        generator = ReplicateImageGenerator(
            model_identifier="black-forest-labs/flux-schnell",
            client=client,
        )

        image = generator.generate_image(PROMPT, seed=7)

        assert image == GeneratedImage(data=b"img", mime_type="image/webp")
        model, = client.run.call_args.args
        payload = client.run.call_args.kwargs["input"]
        assert model == "black-forest-labs/flux-schnell"
        assert payload["prompt"] == "A river delta"
        assert payload["aspect_ratio"] == "16:9"
        assert payload["seed"] == 7
        assert "negative_prompt" not in payload

    def test_versioned_identifier_uses_base_builder(self):
        client = MagicMock()
        client.run.return_value = b"raw"
        generator = ReplicateImageGenerator(
            model_identifier="google/imagen-4:abc123",
            client=client,
        )

        image = generator.generate_image(PROMPT)

        assert image.mime_type == "image/png"
        assert client.run.call_args.kwargs["input"]["safety_filter_level"] == "block_only_high"

    def test_unknown_model(self):
        generator = ReplicateImageGenerator(model_identifier="someone/other", client=MagicMock())
        with pytest.raises(ValueError, match="not configured"):
            generator.generate_image(PROMPT)

    def test_unsupported_aspect_ratio(self):
        generator = ReplicateImageGenerator(client=MagicMock())
        with pytest.raises(ValueError, match="aspect ratio"):
            generator.generate_image(ImagePrompt(positive="x", aspect_ratio="2:1"))

    def test_url_output_is_downloaded(self):
        client = MagicMock()
        client.run.return_value = ["https://example.com/image.jpg"]
        generator = ReplicateImageGenerator(model_identifier="black-forest-labs/flux-dev", client=client)
        response = MagicMock(content=b"jpeg-bytes", headers={"Content-Type": "image/jpeg; charset=binary"})

        with patch("bookcraft.ai_generation.replicate_service.requests.get", return_value=response) as get:
            image = generator.generate_image(PROMPT)

        get.assert_called_once_with("https://example.com/image.jpg", timeout=60.0)
        assert image == GeneratedImage(data=b"jpeg-bytes", mime_type="image/jpeg")

    def test_download_failure(self):
        client = MagicMock()
        client.run.return_value = "https://example.com/image.png"
        generator = ReplicateImageGenerator(client=client)

        with patch(
            "bookcraft.ai_generation.replicate_service.requests.get",
            side_effect=requests.ConnectionError("down"),
        ):
            with pytest.raises(ProviderCallError, match="download"):
                generator.generate_image(PROMPT)

    def test_empty_output(self):
        client = MagicMock()
        client.run.return_value = []
        with pytest.raises(ProviderCallError, match="No image"):
            ReplicateImageGenerator(client=client).generate_image(PROMPT)

    def test_client_failure_is_wrapped(self):
        client = MagicMock()
        client.run.side_effect = RuntimeError("prediction failed")
        with pytest.raises(ProviderCallError, match="prediction failed"):
            ReplicateImageGenerator(client=client).generate_image(PROMPT)

    def test_data_uri(self):
        image = GeneratedImage(data=b"abc", mime_type="image/png")
        assert image.as_data_uri() == "data:image/png;base64,YWJj"


class TestIllustrationPrompts:
    def test_cover_is_portrait_for_both_formats(self):
        for document_format in DocumentFormat:
            prompt = build_cover_prompt("Rivers", "Watercolor", document_format)
            assert prompt.aspect_ratio == "3:4"
            assert '"Rivers"' in prompt.positive
            assert "Watercolor" in prompt.positive

    def test_section_ratio_depends_on_format(self):
        document = build_section_illustration_prompt("Delta", "Ink", DocumentFormat.DOCUMENT)
        slides = build_section_illustration_prompt("Delta", "Ink", DocumentFormat.SLIDE_DECK)
        assert document.aspect_ratio == "16:9"
        assert slides.aspect_ratio == "4:3"
        assert 'section titled "Delta"' in document.positive

    def test_empty_title_rejected(self):
        with pytest.raises(ValueError):
            build_cover_prompt(" ", "Ink", DocumentFormat.DOCUMENT)
        with pytest.raises(ValueError):
            build_section_illustration_prompt("", "Ink", DocumentFormat.DOCUMENT)
