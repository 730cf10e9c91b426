"""
Content provider seam used by the orchestrator.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from bookcraft.ai_generation import GeneratedImage, ImagePrompt, ReplicateImageGenerator
from bookcraft.outline import (
    BookOutlineGenerator,
    GenerationConfig,
    OutlineDraft,
    SectionTextWriter,
)

from .models import Section


class ContentProvider(Protocol):
    """
    Everything the orchestrator needs from a generative backend.

    Implementations raise :class:`~bookcraft.common.CredentialError` before any
    network attempt when they are not authorized, :class:`~bookcraft.common.OutlineError`
    from ``synthesize_outline``, and :class:`~bookcraft.common.ProviderCallError`
    for other request failures.
    """

    def synthesize_outline(self, config: GenerationConfig) -> OutlineDraft: ...

    def synthesize_section_text(
        self,
        section: Section,
        project_title: str,
        config: GenerationConfig,
        prior_context: str | None = None,
    ) -> Iterable[str]: ...

    def synthesize_image(self, prompt: ImagePrompt) -> GeneratedImage: ...


class LiteLLMReplicateProvider:
    """
    Default provider: LiteLLM for outline and section text, Replicate for images.
    """

    def __init__(
        self,
        *,
        outline_generator: BookOutlineGenerator | None = None,
        section_writer: SectionTextWriter | None = None,
        image_generator: ReplicateImageGenerator | None = None,
        text_model: str | None = None,
        text_api_key: str | None = None,
        image_model: str | None = None,
        image_api_token: str | None = None,
    ) -> None:
        self._outline_generator = outline_generator or BookOutlineGenerator(
            api_key=text_api_key,
            model=text_model,
        )
        self._section_writer = section_writer or SectionTextWriter(
            api_key=text_api_key,
            model=text_model,
        )
        self._image_generator = image_generator or ReplicateImageGenerator(
            api_token=image_api_token,
            model_identifier=image_model,
        )

    def synthesize_outline(self, config: GenerationConfig) -> OutlineDraft:
        return self._outline_generator.generate_outline(config)

    def synthesize_section_text(
        self,
        section: Section,
        project_title: str,
        config: GenerationConfig,
        prior_context: str | None = None,
    ) -> Iterable[str]:
        return self._section_writer.stream_section(
            section_title=section.title,
            section_description=section.description,
            project_title=project_title,
            config=config,
            prior_context=prior_context,
        )

    def synthesize_image(self, prompt: ImagePrompt) -> GeneratedImage:
        return self._image_generator.generate_image(prompt)
