"""
Streams section text from a LiteLLM-compatible model.
"""

from __future__ import annotations

from typing import Any, Iterator

from bookcraft.common import (
    CredentialError,
    ProviderCallError,
    StreamCallable,
    stream_chat_completion,
)

from .config import GenerationConfig
from .outline_service import missing_text_credential, resolve_text_api_key, resolve_text_model
from .prompting import ChatPrompt, build_section_prompt

DEFAULT_SEARCH_OPTIONS = {"search_context_size": "medium"}


class SectionTextWriter:
    """
    Writes one section at a time, yielding text fragments as they arrive.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        stream_fn: StreamCallable | None = None,
    ) -> None:
        self._api_key = resolve_text_api_key(api_key)
        self._model = resolve_text_model(model)
        self._stream_fn: StreamCallable = stream_fn or stream_chat_completion

    @property
    def model(self) -> str:
        return self._model

    def stream_section(
        self,
        *,
        section_title: str,
        section_description: str,
        project_title: str,
        config: GenerationConfig,
        prior_context: str | None = None,
        temperature: float = 0.7,
        **response_kwargs: Any,
    ) -> Iterator[str]:
        """
        Yield the section's Markdown in arrival order.

        The credential check runs on the first ``next()`` call, before any
        request is sent. Failures after that point surface as
        :class:`ProviderCallError`, possibly after some fragments were yielded.
        """
        if not self._api_key:
            raise missing_text_credential()

        prompt: ChatPrompt = build_section_prompt(
            section_title=section_title,
            section_description=section_description,
            project_title=project_title,
            config=config,
            prior_context=prior_context,
        )

        request_kwargs: dict[str, Any] = dict(response_kwargs)
        if config.enable_search:
            request_kwargs.setdefault("web_search_options", dict(DEFAULT_SEARCH_OPTIONS))

        try:
            yield from self._stream_fn(
                model=self._model,
                messages=prompt.as_messages(),
                temperature=temperature,
                api_key=self._api_key,
                **request_kwargs,
            )
        except (CredentialError, ProviderCallError):
            raise
        except Exception as exc:
            raise ProviderCallError(
                f"Section stream for '{section_title}' failed: {exc}"
            ) from exc
