"""
Integration with Replicate for cover and section illustration synthesis.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

import replicate
import requests

from bookcraft.common import CredentialError, ProviderCallError

from .prompting import SUPPORTED_ASPECT_RATIOS, ImagePrompt

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "black-forest-labs/flux-schnell"

_OUTPUT_FORMAT = "png"

_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}


@dataclass(frozen=True)
class GeneratedImage:
    """Encoded image bytes and their MIME type."""

    data: bytes
    mime_type: str

    def as_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def _build_flux_input(*, prompt: ImagePrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "aspect_ratio": prompt.aspect_ratio,
        "output_format": _OUTPUT_FORMAT,
        "num_outputs": 1,
    }


def _build_flux_pro_input(*, prompt: ImagePrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "aspect_ratio": prompt.aspect_ratio,
        "output_format": _OUTPUT_FORMAT,
        "safety_tolerance": 2,
        "prompt_upsampling": True,
    }


def _build_imagen_input(*, prompt: ImagePrompt) -> dict[str, Any]:
    return {
        "prompt": prompt.positive,
        "aspect_ratio": prompt.aspect_ratio,
        "output_format": _OUTPUT_FORMAT,
        "safety_filter_level": "block_only_high",
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_input,
    "black-forest-labs/flux-dev": _build_flux_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_pro_input,
    "google/imagen-4": _build_imagen_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: ImagePrompt,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(set(_MODEL_INPUT_BUILDERS)))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt)


class ReplicateImageGenerator:
    """
    Convenience wrapper around the Replicate client for document illustrations.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
        A missing token is reported lazily, as :class:`CredentialError`, when an image
        is first requested.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Falls back
        to ``BOOKCRAFT_IMAGE_MODEL``, then ``REPLICATE_MODEL``, then a FLUX default.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    request_timeout:
        Timeout in seconds when an output must be downloaded from a URL.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
        request_timeout: float = 60.0,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        self._model_identifier = (
            model_identifier
            or os.getenv("BOOKCRAFT_IMAGE_MODEL")
            or os.getenv("REPLICATE_MODEL")
            or DEFAULT_IMAGE_MODEL
        )
        self._client = client
        self._request_timeout = request_timeout

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    def generate_image(self, prompt: ImagePrompt, **model_kwargs: Any) -> GeneratedImage:
        """
        Generate a single image for ``prompt``.

        Parameters
        ----------
        prompt:
            Prompt text and requested aspect ratio.
        **model_kwargs:
            Additional keyword arguments forwarded directly to the Replicate model invocation.

        Raises
        ------
        CredentialError
            No Replicate token is configured. Raised before any request is made.
        ProviderCallError
            The prediction failed or produced no usable image.
        """
        if prompt.aspect_ratio not in SUPPORTED_ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio '{prompt.aspect_ratio}'.")

        client = self._get_client()
        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt,
        )
        # Allow the caller to tweak model-specific knobs (e.g., seed, guidance).
        replicate_input.update(model_kwargs)

        try:
            outputs = client.run(self._model_identifier, input=replicate_input)
        except Exception as exc:
            raise ProviderCallError(f"Image generation failed: {exc}") from exc

        return self._read_first_output(outputs)

    def _get_client(self) -> replicate.Client:
        if self._client is None:
            if not self._api_token:
                raise CredentialError(
                    "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
                )
            self._client = replicate.Client(api_token=self._api_token)
        return self._client

    def _read_first_output(self, outputs: Any) -> GeneratedImage:
        candidates = _flatten_outputs(outputs)
        if not candidates:
            raise ProviderCallError("No image generated.")

        first = candidates[0]
        if hasattr(first, "read"):
            data = first.read()
            source = str(getattr(first, "url", "") or "")
            return GeneratedImage(data=data, mime_type=_guess_mime_type(source))

        if isinstance(first, bytes):
            return GeneratedImage(data=first, mime_type=_MIME_TYPES[_OUTPUT_FORMAT])

        url = str(first)
        try:
            response = requests.get(url, timeout=self._request_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderCallError(f"Failed to download generated image: {exc}") from exc

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        mime_type = content_type if content_type.startswith("image/") else _guess_mime_type(url)
        return GeneratedImage(data=response.content, mime_type=mime_type)


def _flatten_outputs(raw: Any) -> list[Any]:
    """
    Replicate models return a single file output, a URL, or a list of either.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)) or hasattr(raw, "read"):
        return [raw]
    if isinstance(raw, (list, tuple)):
        flattened: list[Any] = []
        for item in raw:
            flattened.extend(_flatten_outputs(item))
        return flattened
    try:
        return _flatten_outputs(list(raw))
    except TypeError:
        return [str(raw)]


def _guess_mime_type(source: str) -> str:
    suffix = source.rsplit("?", 1)[0].rsplit(".", 1)[-1].lower() if "." in source else ""
    return _MIME_TYPES.get(suffix, _MIME_TYPES[_OUTPUT_FORMAT])
