"""
Drives a project through outline synthesis, section writing, and illustration.
"""

from __future__ import annotations

import logging

from bookcraft.ai_generation import build_cover_prompt, build_section_illustration_prompt
from bookcraft.common import CredentialError, ErrorKind, OutlineError, ProviderError
from bookcraft.outline import GenerationConfig

from .models import (
    EDITABLE_SECTION_FIELDS,
    Project,
    RunProgress,
    RunState,
    Section,
    SectionStatus,
)
from .provider import ContentProvider, LiteLLMReplicateProvider
from .session import GenerationSession, SessionStateError

logger = logging.getLogger(__name__)

TEXT_FAILURE_PLACEHOLDER = "*Error generating text. Please try regenerating.*"

DEFAULT_NEW_SECTION_TITLE = "New Chapter"
DEFAULT_NEW_SECTION_DESCRIPTION = "Description of the new chapter"

_BUSY_STATES = (RunState.OUTLINING, RunState.GENERATING)


class BookOrchestrator:
    """
    High-level coordinator for the outline -> text -> illustration workflow.

    The orchestrator keeps no project state of its own; every entry point works
    on the :class:`GenerationSession` passed to it and publishes a snapshot to the
    session's listeners after each observable change.
    """

    def __init__(self, *, provider: ContentProvider | None = None) -> None:
        self._provider: ContentProvider = provider or LiteLLMReplicateProvider()

    # ------------------------------------------------------------------ outline

    def start_outline(
        self,
        session: GenerationSession,
        config: GenerationConfig,
    ) -> Project | None:
        """
        Synthesize a fresh outline and replace the session's project with it.

        Returns the new project, or ``None`` when synthesis failed. On failure
        the previous project is kept and the error is recorded on the session:
        outline problems return the session to ``IDLE``, a missing credential
        moves it to ``FAILED``.
        """
        self._ensure_not_busy(session)
        session.clear_error()
        session.progress = RunProgress(status_message="Drafting outline...")
        session.transition(RunState.OUTLINING)
        session.publish()

        try:
            draft = self._provider.synthesize_outline(config)
            if not draft.sections:
                raise OutlineError("Outline contains no sections.")
        except CredentialError as exc:
            logger.error("Outline synthesis is not authorized: %s", exc)
            self._fail(session, str(exc), exc.kind, RunState.FAILED)
            return None
        except OutlineError as exc:
            logger.error("Outline synthesis failed: %s", exc)
            self._fail(session, str(exc), exc.kind, RunState.IDLE)
            return None
        except Exception as exc:
            logger.error("Outline request failed: %s", exc, exc_info=True)
            message = f"Failed to generate outline: {exc}"
            self._fail(session, message, ErrorKind.PROVIDER_ERROR, RunState.IDLE)
            return None

        project = Project.from_outline(
            config,
            title=config.resolve_title(draft.title),
            entries=draft.sections,
        )
        session.project = project
        session.progress = RunProgress(status_message="Outline ready for review.")
        session.transition(RunState.REVIEWING)
        logger.info("Outline '%s' ready with %d sections", project.title, len(project.sections))
        session.publish()
        return project

    # ------------------------------------------------------------------ full generation

    def start_or_resume_generation(self, session: GenerationSession) -> RunState:
        """
        Generate the cover and every unfinished section of the session's project.

        Sections that are already ``done`` with content and an illustration are
        skipped, so calling this again after a failure resumes the run. Resume is
        section-granular: a section interrupted mid-way is regenerated from scratch.
        """
        self._ensure_not_busy(session)
        project = session.require_project()

        session.clear_error()
        session.progress = RunProgress.for_section_count(len(project.sections))
        session.transition(RunState.GENERATING)
        session.publish()

        try:
            self._run_cover_step(session, project)
            for index, section in enumerate(project.sections):
                self._run_section(session, project, index, section)
        except Exception as exc:
            kind = exc.kind if isinstance(exc, ProviderError) else None
            if isinstance(exc, ProviderError):
                logger.error("Generation halted: %s", exc)
            else:
                logger.exception("Generation halted by an unexpected error")
            message = str(exc) or "Generation failed midway."
            self._fail(session, message, kind, RunState.FAILED)
            return session.run_state

        session.progress = session.progress.with_message("Generation complete.")
        session.transition(RunState.COMPLETED)
        session.publish()
        return session.run_state

    def _run_cover_step(self, session: GenerationSession, project: Project) -> None:
        if not project.cover_image_ref:
            self._set_progress(session, message="Designing cover...")
            try:
                prompt = build_cover_prompt(
                    project.title,
                    project.config.style,
                    project.config.format,
                )
                image = self._provider.synthesize_image(prompt)
                project.cover_image_ref = image.as_data_uri()
            except CredentialError:
                raise
            except Exception as exc:
                logger.warning("Cover generation failed: %s", exc, exc_info=True)
        self._set_progress(session, steps=1)

    def _run_section(
        self,
        session: GenerationSession,
        project: Project,
        index: int,
        section: Section,
    ) -> None:
        label = project.config.format.section_label
        number = index + 1

        if section.is_finished:
            logger.debug("Skipping finished section %s", section.id)
            self._set_progress(session, steps=2)
            return

        logger.info("Writing %s %d/%d: %s", label.lower(), number, len(project.sections), section.title)
        section.status = SectionStatus.WRITING
        section.content = ""
        section.illustration_ref = None
        self._set_progress(session, message=f"Writing {label} {number}: {section.title}...")

        prior_context = project.sections[index - 1].description if index > 0 else None
        self._stream_section_text(session, project, section, prior_context)
        section.status = SectionStatus.ILLUSTRATING
        self._set_progress(session, steps=1, message=f"Illustrating {label} {number}...")

        self._illustrate_section(project, section)
        section.status = SectionStatus.DONE
        self._set_progress(session, steps=1)

    def _stream_section_text(
        self,
        session: GenerationSession,
        project: Project,
        section: Section,
        prior_context: str | None,
    ) -> None:
        accumulated = ""
        try:
            fragments = self._provider.synthesize_section_text(
                section,
                project.title,
                project.config,
                prior_context,
            )
            for fragment in fragments:
                if not fragment:
                    continue
                accumulated += fragment
                section.content = accumulated
                session.publish()
        except CredentialError:
            raise
        except Exception as exc:
            logger.warning(
                "Text stream for section %s failed after %d characters: %s",
                section.id,
                len(accumulated),
                exc,
                exc_info=True,
            )
            if not accumulated:
                section.content = TEXT_FAILURE_PLACEHOLDER

    def _illustrate_section(self, project: Project, section: Section) -> None:
        try:
            prompt = build_section_illustration_prompt(
                section.title,
                project.config.style,
                project.config.format,
            )
            image = self._provider.synthesize_image(prompt)
            section.illustration_ref = image.as_data_uri()
        except CredentialError:
            raise
        except Exception as exc:
            logger.warning("Illustration for section %s failed: %s", section.id, exc, exc_info=True)

    # ------------------------------------------------------------------ editing

    def edit_title(self, session: GenerationSession, title: str) -> None:
        session.ensure_editable()
        project = session.require_project()
        project.config = project.config.with_title(title)
        session.publish()

    def edit_section(
        self,
        session: GenerationSession,
        section_id: str,
        field: str,
        value: str,
    ) -> Section:
        """Replace one editable field (title, description or content) of a section."""
        if field not in EDITABLE_SECTION_FIELDS:
            allowed = ", ".join(EDITABLE_SECTION_FIELDS)
            raise ValueError(f"Field '{field}' is not editable. Choose one of: {allowed}.")
        session.ensure_editable()
        section = session.require_project().find_section(section_id)
        setattr(section, field, value)
        session.publish()
        return section

    def add_section(
        self,
        session: GenerationSession,
        *,
        title: str = DEFAULT_NEW_SECTION_TITLE,
        description: str = DEFAULT_NEW_SECTION_DESCRIPTION,
    ) -> Section:
        session.ensure_editable()
        section = session.require_project().append_section(title=title, description=description)
        session.publish()
        return section

    def remove_section(self, session: GenerationSession, section_id: str) -> Section:
        session.ensure_editable()
        project = session.require_project()
        section = project.sections.pop(project.section_index(section_id))
        session.publish()
        return section

    def set_section_illustration(
        self,
        session: GenerationSession,
        section_id: str,
        illustration_ref: str | None,
    ) -> Section:
        session.ensure_editable()
        section = session.require_project().find_section(section_id)
        section.illustration_ref = illustration_ref
        session.publish()
        return section

    def regenerate_illustration(self, session: GenerationSession, section_id: str) -> str:
        """
        Request a new illustration for one section outside a run.

        Provider errors propagate; the existing illustration is kept on failure.
        """
        session.ensure_editable()
        project = session.require_project()
        section = project.find_section(section_id)
        prompt = build_section_illustration_prompt(
            section.title,
            project.config.style,
            project.config.format,
        )
        image = self._provider.synthesize_image(prompt)
        section.illustration_ref = image.as_data_uri()
        session.publish()
        return section.illustration_ref

    def reset(self, session: GenerationSession) -> None:
        self._ensure_not_busy(session)
        session.project = None
        session.progress = RunProgress()
        session.clear_error()
        session.transition(RunState.IDLE)
        session.publish()

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _ensure_not_busy(session: GenerationSession) -> None:
        if session.run_state in _BUSY_STATES:
            raise SessionStateError(
                f"Another phase is already running ({session.run_state.value})."
            )

    @staticmethod
    def _set_progress(
        session: GenerationSession,
        *,
        steps: int = 0,
        message: str | None = None,
    ) -> None:
        session.progress = session.progress.advance(steps, message)
        session.publish()

    @staticmethod
    def _fail(
        session: GenerationSession,
        message: str,
        kind: ErrorKind | None,
        state: RunState,
    ) -> None:
        session.record_error(message, kind)
        session.progress = session.progress.with_message(message)
        session.transition(state)
        session.publish()
