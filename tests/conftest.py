"""Shared test fixtures."""

from __future__ import annotations

from typing import Iterator

import pytest

from bookcraft.ai_generation import GeneratedImage, ImagePrompt
from bookcraft.common import CredentialError, OutlineError, ProviderCallError
from bookcraft.outline import GenerationConfig, OutlineDraft, OutlineEntry
from bookcraft.pipeline import BookOrchestrator, GenerationSession, Section

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakeProvider:
    """
    Scripted content provider that records every call.

    ``fragments`` maps a section title to the fragments its stream yields;
    titles in ``stream_failures`` raise after their fragments are exhausted.
    """

    def __init__(
        self,
        *,
        outline: OutlineDraft | None = None,
        outline_error: Exception | None = None,
        fragments: dict[str, list[str]] | None = None,
        stream_failures: set[str] | None = None,
        stream_error: Exception | None = None,
        image_failures: set[str] | None = None,
        fail_cover: bool = False,
        image_error: Exception | None = None,
    ) -> None:
        self.outline = outline or OutlineDraft(
            title="Provider Title",
            sections=(
                OutlineEntry("Origins", "Where it all began"),
                OutlineEntry("Methods", "How it works"),
                OutlineEntry("Outlook", "Where it is going"),
            ),
        )
        self.outline_error = outline_error
        self.fragments = fragments or {}
        self.stream_failures = stream_failures or set()
        self.stream_error = stream_error
        self.image_failures = image_failures or set()
        self.fail_cover = fail_cover
        self.image_error = image_error
        self.calls: list[tuple] = []

    def synthesize_outline(self, config: GenerationConfig) -> OutlineDraft:
        self.calls.append(("outline", config.topic))
        if self.outline_error is not None:
            raise self.outline_error
        return self.outline

    def synthesize_section_text(
        self,
        section: Section,
        project_title: str,
        config: GenerationConfig,
        prior_context: str | None = None,
    ) -> Iterator[str]:
        self.calls.append(("text", section.id, prior_context))
        return self._stream(section)

    def _stream(self, section: Section) -> Iterator[str]:
        if self.stream_error is not None:
            raise self.stream_error
        for fragment in self.fragments.get(section.title, [f"{section.title} body. ", "More text."]):
            yield fragment
        if section.title in self.stream_failures:
            raise ProviderCallError(f"stream for {section.title} broke")

    def synthesize_image(self, prompt: ImagePrompt) -> GeneratedImage:
        is_cover = "cover" in prompt.positive
        self.calls.append(("cover" if is_cover else "image", prompt.positive))
        if self.image_error is not None:
            raise self.image_error
        if is_cover and self.fail_cover:
            raise ProviderCallError("cover failed")
        for title in self.image_failures:
            if f'section titled "{title}"' in prompt.positive:
                raise ProviderCallError(f"image for {title} failed")
        return GeneratedImage(data=PNG_BYTES, mime_type="image/png")

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


@pytest.fixture
def config() -> GenerationConfig:
    return GenerationConfig(topic="Topic", section_count=3)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def orchestrator(provider: FakeProvider) -> BookOrchestrator:
    return BookOrchestrator(provider=provider)


@pytest.fixture
def session() -> GenerationSession:
    return GenerationSession()


@pytest.fixture
def reviewed_session(
    orchestrator: BookOrchestrator,
    session: GenerationSession,
    config: GenerationConfig,
) -> GenerationSession:
    orchestrator.start_outline(session, config)
    return session


@pytest.fixture
def credential_error() -> CredentialError:
    return CredentialError("API key missing.")


@pytest.fixture
def outline_error() -> OutlineError:
    return OutlineError("Failed to parse outline.")


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    return FakeProvider
