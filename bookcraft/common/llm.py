"""
LiteLLM-powered chat completion helper utilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, MutableMapping, Sequence

from litellm import completion

ChatMessage = Mapping[str, Any]


@dataclass
class ChatResult:
    """
    Structured response returned from an LLM chat completion.
    """

    text: str
    raw: Any


CompletionCallable = Callable[..., ChatResult]
StreamCallable = Callable[..., Iterator[str]]


def _build_payload(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None,
    max_tokens: int | None,
    api_key: str | None,
    extra_kwargs: Mapping[str, Any],
) -> MutableMapping[str, Any]:
    payload: MutableMapping[str, Any] = {
        "model": model,
        "messages": list(messages),
    }

    if temperature is not None:
        payload["temperature"] = temperature

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if api_key is not None:
        payload["api_key"] = api_key

    payload.update(extra_kwargs)
    return payload


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Invoke LiteLLM's `completion` API and return the consolidated text.
    """
    payload = _build_payload(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=api_key,
        extra_kwargs=extra_kwargs,
    )

    response = completion(**payload)

    try:
        message = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RuntimeError("Unexpected LiteLLM response format.") from exc

    text = str(message or "").strip()
    return ChatResult(text=text, raw=response)


def stream_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    **extra_kwargs: Any,
) -> Iterator[str]:
    """
    Invoke LiteLLM's `completion` API in streaming mode and yield text fragments
    in arrival order. Empty deltas are skipped.
    """
    payload = _build_payload(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=api_key,
        extra_kwargs=extra_kwargs,
    )
    payload["stream"] = True

    for chunk in completion(**payload):
        fragment = _extract_delta_text(chunk)
        if fragment:
            yield fragment


def _extract_delta_text(chunk: Any) -> str:
    try:
        choice = chunk.choices[0]
        delta = choice.delta
        content = getattr(delta, "content", None)
    except (AttributeError, IndexError, TypeError):
        try:
            content = chunk["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise RuntimeError("Unexpected LiteLLM stream chunk format.") from exc
    return str(content) if content else ""
