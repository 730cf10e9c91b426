"""
Service layer for producing structured outlines via LiteLLM-compatible models.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from bookcraft.common import (
    ChatResult,
    CompletionCallable,
    CredentialError,
    ErrorKind,
    OutlineError,
    call_chat_completion,
)

from .config import GenerationConfig
from .prompting import ChatPrompt, build_outline_prompt

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini/gemini-2.5-pro"

_CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")


def resolve_text_api_key(api_key: str | None = None) -> str | None:
    return (
        api_key
        or os.getenv("BOOKCRAFT_API_KEY")
        or os.getenv("GEMINI_API_KEY")
        or os.getenv("OPENAI_API_KEY")
        or os.getenv("LITELLM_API_KEY")
    )


def resolve_text_model(model: str | None = None) -> str:
    return (
        model
        or os.getenv("BOOKCRAFT_TEXT_MODEL")
        or os.getenv("LITELLM_MODEL")
        or DEFAULT_TEXT_MODEL
    )


def missing_text_credential() -> CredentialError:
    return CredentialError(
        "API key missing. Set BOOKCRAFT_API_KEY (or GEMINI_API_KEY / OPENAI_API_KEY) "
        "or pass api_key."
    )


@dataclass(frozen=True)
class OutlineEntry:
    title: str
    description: str


@dataclass(frozen=True)
class OutlineDraft:
    """
    Raw outline returned by the provider, before ids and statuses are assigned.
    """

    title: str
    sections: tuple[OutlineEntry, ...] = field(default_factory=tuple)


class BookOutlineGenerator:
    """
    High-level helper that turns a generation config into a titled section outline.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._api_key = resolve_text_api_key(api_key)
        self._model = resolve_text_model(model)
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    def generate_outline(
        self,
        config: GenerationConfig,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 2000,
        **response_kwargs: Any,
    ) -> OutlineDraft:
        """
        Invoke the configured LLM once and parse its JSON outline.
        """
        if not self._api_key:
            raise missing_text_credential()

        prompt: ChatPrompt = build_outline_prompt(config)

        try:
            result: ChatResult = self._completion_fn(
                model=self._model,
                messages=prompt.as_messages(),
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=self._api_key,
                response_format={"type": "json_object"},
                **response_kwargs,
            )
        except CredentialError:
            raise
        except Exception as exc:
            raise OutlineError(
                f"Outline request failed: {exc}", kind=ErrorKind.PROVIDER_ERROR
            ) from exc

        return parse_outline_response(result.text)


def parse_outline_response(raw_text: str) -> OutlineDraft:
    """
    Parse the outline JSON, tolerating Markdown code fences around it.
    """
    text = _CODE_FENCE_PATTERN.sub("", raw_text or "").strip()
    if not text:
        raise OutlineError("No response from the outline model.")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.debug("Unparseable outline payload: %s", text)
        raise OutlineError("Failed to parse outline.") from exc

    if not isinstance(parsed, Mapping):
        raise OutlineError("Outline JSON must be an object.")

    sections_payload = parsed.get("sections")
    if sections_payload is None:
        sections_payload = parsed.get("chapters")
    if not isinstance(sections_payload, list) or not sections_payload:
        raise OutlineError("Invalid structure: 'sections' array missing or empty.")

    title = parsed.get("title")
    return OutlineDraft(
        title=str(title).strip() if title else "",
        sections=tuple(_convert_entries(sections_payload)),
    )


def _convert_entries(items: Iterable[Any]) -> list[OutlineEntry]:
    entries: list[OutlineEntry] = []
    for item in items:
        if not isinstance(item, Mapping):
            raise OutlineError(f"Invalid section payload: {item!r}")
        title = str(item.get("title") or "").strip()
        description = str(item.get("description") or "").strip()
        if not title:
            raise OutlineError(f"Section payload is missing a title: {item!r}")
        entries.append(OutlineEntry(title=title, description=description))
    return entries
