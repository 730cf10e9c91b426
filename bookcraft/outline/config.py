"""
Structured representation of the inputs that drive one generation run.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml

MIN_SECTION_COUNT = 3
MAX_SECTION_COUNT = 15

DEFAULT_AUDIENCE = "General Reader"
DEFAULT_TONE = "Informative & Engaging"
DEFAULT_STYLE = "Modern Minimalist"
DEFAULT_SECTION_COUNT = 5


class DocumentFormat(str, Enum):
    DOCUMENT = "document"
    SLIDE_DECK = "slide-deck"

    @classmethod
    def parse(cls, value: Any) -> "DocumentFormat":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "": cls.DOCUMENT,
            "ebook": cls.DOCUMENT,
            "book": cls.DOCUMENT,
            "slides": cls.SLIDE_DECK,
            "slide_deck": cls.SLIDE_DECK,
            "carousel": cls.SLIDE_DECK,
            "linkedin-carousel": cls.SLIDE_DECK,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unsupported format {value!r}. Expected one of: {choices}.") from exc

    @property
    def section_label(self) -> str:
        return "Slide" if self is DocumentFormat.SLIDE_DECK else "Chapter"


def _coerce_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _coerce_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Expected a boolean-compatible value, got {value!r}")


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _coerce_section_count(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_SECTION_COUNT
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Expected an integer-compatible value for section_count, got {value!r}"
        ) from exc


@dataclass(frozen=True)
class GenerationConfig:
    """
    Canonical, per-run generation inputs.

    Attributes
    ----------
    topic:
        Free-form description of what the document is about (required).
    title:
        Working title. May be empty before outline synthesis.
    author_name:
        Byline used in the writer persona and on the cover.
    audience:
        Intended readership.
    tone:
        Writing tone label.
    enable_search:
        Ask the text model to ground its writing with web search.
    style:
        Illustration style label used for cover and section art.
    section_count:
        Target number of sections. Advisory only: the outline may return more
        or fewer, and the user may add or remove sections during review.
    format:
        Plain long-form document or slide deck.
    """

    topic: str
    title: str = ""
    author_name: str = ""
    audience: str = DEFAULT_AUDIENCE
    tone: str = DEFAULT_TONE
    enable_search: bool = True
    style: str = DEFAULT_STYLE
    section_count: int = DEFAULT_SECTION_COUNT
    format: DocumentFormat = DocumentFormat.DOCUMENT

    def __post_init__(self) -> None:
        if not self.topic.strip():
            raise ValueError("Generation config must include a non-empty topic.")
        if not MIN_SECTION_COUNT <= self.section_count <= MAX_SECTION_COUNT:
            raise ValueError(
                f"section_count must fall between {MIN_SECTION_COUNT} and "
                f"{MAX_SECTION_COUNT}, received {self.section_count}."
            )
        if not isinstance(self.format, DocumentFormat):
            object.__setattr__(self, "format", DocumentFormat.parse(self.format))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GenerationConfig":
        """
        Build a config from a dict-like object (e.g., parsed JSON/YAML or CLI flags).
        """
        topic = _coerce_str(data.get("topic"))
        if not topic:
            raise ValueError("Config data must include a non-empty 'topic' field.")

        return cls(
            topic=topic,
            title=_coerce_str(data.get("title")),
            author_name=_coerce_str(data.get("author_name") or data.get("authorName")),
            audience=_coerce_str(data.get("audience"), DEFAULT_AUDIENCE),
            tone=_coerce_str(data.get("tone"), DEFAULT_TONE),
            enable_search=_coerce_bool(
                data.get("enable_search", data.get("enableSearch")), True
            ),
            style=_coerce_str(data.get("style"), DEFAULT_STYLE),
            section_count=_coerce_section_count(
                _first_present(data, "section_count", "sectionCount", "chapter_count", "chapterCount")
            ),
            format=DocumentFormat.parse(data.get("format")),
        )

    @classmethod
    def from_file(cls, path: Path | str, **overrides: Any) -> "GenerationConfig":
        """
        Load config data from a YAML or JSON file. Non-None ``overrides`` win.
        """
        data = dict(load_mapping_file(Path(path)))
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls.from_mapping(data)

    def with_title(self, title: str) -> "GenerationConfig":
        return dataclasses.replace(self, title=title)

    def resolve_title(self, provider_title: str | None) -> str:
        """Pick the project title: provider title, then user title, then topic."""
        return _coerce_str(provider_title) or self.title.strip() or self.topic.strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "title": self.title,
            "author_name": self.author_name,
            "audience": self.audience,
            "tone": self.tone,
            "enable_search": self.enable_search,
            "style": self.style,
            "section_count": self.section_count,
            "format": self.format.value,
        }

    def summary_for_prompt(self) -> str:
        lines = [
            f"Topic: {self.topic}",
            f"Target Audience: {self.audience}",
            f"Tone: {self.tone}",
        ]
        if self.author_name:
            lines.append(f"Author: {self.author_name}")
        if self.title:
            lines.append(f"Working title: {self.title}")
        lines.append(f"Target Chapter/Section Count: {self.section_count}")
        return "\n".join(lines)


def load_mapping_file(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError("Unsupported config file format. Use YAML or JSON.")

    if not isinstance(data, Mapping):
        raise ValueError("Config file must deserialize to a mapping.")
    return data
