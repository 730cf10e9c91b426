"""
In-memory project state built and mutated during a generation run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from bookcraft.outline import GenerationConfig, OutlineEntry

SECTION_ID_PREFIX = "section-"

EDITABLE_SECTION_FIELDS = ("title", "description", "content")


class SectionStatus(str, Enum):
    PENDING = "pending"
    WRITING = "writing"
    ILLUSTRATING = "illustrating"
    DONE = "done"


class RunState(str, Enum):
    IDLE = "idle"
    OUTLINING = "outlining"
    REVIEWING = "reviewing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Section:
    """A single chapter or slide."""

    id: str
    title: str
    description: str
    content: str | None = None
    illustration_ref: str | None = None
    status: SectionStatus = SectionStatus.PENDING

    @property
    def is_finished(self) -> bool:
        """True when a run may skip this section entirely."""
        return (
            self.status is SectionStatus.DONE
            and bool(self.content)
            and bool(self.illustration_ref)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "illustration_ref": self.illustration_ref,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Section":
        try:
            section_id = str(payload["id"]).strip()
            title = str(payload["title"]).strip()
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Invalid section entry: {payload}") from exc
        if not section_id:
            raise ValueError(f"Section entry has an empty id: {payload}")

        content = payload.get("content")
        illustration_ref = payload.get("illustration_ref")
        try:
            status = SectionStatus(payload.get("status") or SectionStatus.PENDING.value)
        except ValueError as exc:
            raise ValueError(f"Invalid section status in entry: {payload}") from exc

        return cls(
            id=section_id,
            title=title,
            description=str(payload.get("description") or "").strip(),
            content=str(content) if content is not None else None,
            illustration_ref=str(illustration_ref) if illustration_ref else None,
            status=status,
        )


@dataclass
class Project:
    """
    The document being built: resolved config, optional cover, ordered sections.

    Section ids are handed out from ``next_section_index`` which only ever grows,
    so an id is never reused after its section is removed.
    """

    config: GenerationConfig
    sections: list[Section] = field(default_factory=list)
    cover_image_ref: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    next_section_index: int = 0

    @property
    def title(self) -> str:
        return self.config.title

    @classmethod
    def from_outline(
        cls,
        config: GenerationConfig,
        *,
        title: str,
        entries: Iterable[OutlineEntry],
    ) -> "Project":
        project = cls(config=config.with_title(title))
        for entry in entries:
            project.append_section(title=entry.title, description=entry.description)
        return project

    def allocate_section_id(self) -> str:
        section_id = f"{SECTION_ID_PREFIX}{self.next_section_index}"
        self.next_section_index += 1
        return section_id

    def append_section(self, *, title: str, description: str) -> Section:
        section = Section(id=self.allocate_section_id(), title=title, description=description)
        self.sections.append(section)
        return section

    def find_section(self, section_id: str) -> Section:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise KeyError(f"No section with id '{section_id}'.")

    def section_index(self, section_id: str) -> int:
        for index, section in enumerate(self.sections):
            if section.id == section_id:
                return index
        raise KeyError(f"No section with id '{section_id}'.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "cover_image_ref": self.cover_image_ref,
            "created_at": self.created_at.isoformat(),
            "next_section_index": self.next_section_index,
            "sections": [section.to_dict() for section in self.sections],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Project":
        if "config" not in payload:
            raise ValueError("Project payload must include 'config'.")
        if "sections" not in payload:
            raise ValueError("Project payload must include 'sections'.")

        config = GenerationConfig.from_mapping(payload["config"])
        sections = [Section.from_dict(entry) for entry in payload.get("sections") or []]

        seen: set[str] = set()
        for section in sections:
            if section.id in seen:
                raise ValueError(f"Duplicate section id '{section.id}'.")
            seen.add(section.id)

        created_raw = payload.get("created_at")
        if isinstance(created_raw, datetime):
            created_at = created_raw
        elif created_raw:
            try:
                created_at = datetime.fromisoformat(str(created_raw))
            except ValueError as exc:
                raise ValueError(f"Invalid created_at timestamp: {created_raw!r}") from exc
        else:
            created_at = datetime.now(timezone.utc)

        next_index = int(payload.get("next_section_index") or 0)
        next_index = max(next_index, _next_free_index(sections))

        cover = payload.get("cover_image_ref")
        return cls(
            config=config,
            sections=sections,
            cover_image_ref=str(cover) if cover else None,
            created_at=created_at,
            next_section_index=next_index,
        )

    @classmethod
    def from_yaml(cls, source: str | Path) -> "Project":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("Project YAML must deserialize to a mapping.")
        return cls.from_dict(data)


def _next_free_index(sections: Iterable[Section]) -> int:
    highest = -1
    for section in sections:
        suffix = section.id[len(SECTION_ID_PREFIX):] if section.id.startswith(SECTION_ID_PREFIX) else ""
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


@dataclass(frozen=True)
class RunProgress:
    """Step accounting for the current run. One step for the cover, two per section."""

    steps_completed: int = 0
    steps_total: int = 0
    status_message: str = ""

    @classmethod
    def for_section_count(cls, section_count: int) -> "RunProgress":
        return cls(steps_completed=0, steps_total=1 + 2 * section_count)

    def advance(self, steps: int = 1, message: str | None = None) -> "RunProgress":
        return RunProgress(
            steps_completed=self.steps_completed + steps,
            steps_total=self.steps_total,
            status_message=self.status_message if message is None else message,
        )

    def with_message(self, message: str) -> "RunProgress":
        return RunProgress(
            steps_completed=self.steps_completed,
            steps_total=self.steps_total,
            status_message=message,
        )
