"""
Explicit generation context shared by the orchestrator and the editing surface.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable

from bookcraft.common import ErrorKind

from .models import Project, RunProgress, RunState

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    """An entry point was invoked in a run state that does not allow it."""


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of a session handed to observers."""

    run_state: RunState
    progress: RunProgress
    project: Project | None
    error: str | None
    error_kind: ErrorKind | None

    @property
    def needs_credential(self) -> bool:
        return self.error_kind is ErrorKind.CREDENTIAL_MISSING


SnapshotListener = Callable[[SessionSnapshot], None]


@dataclass
class GenerationSession:
    """
    Holds the active project and run bookkeeping for one user.

    Outside a run the editing surface may mutate ``project`` directly or via the
    orchestrator's editing helpers. While ``run_state`` is ``GENERATING`` the
    orchestrator is the only writer.
    """

    run_state: RunState = RunState.IDLE
    project: Project | None = None
    progress: RunProgress = field(default_factory=RunProgress)
    error: str | None = None
    error_kind: ErrorKind | None = None
    _listeners: list[SnapshotListener] = field(default_factory=list, repr=False)

    @property
    def needs_credential(self) -> bool:
        return self.error_kind is ErrorKind.CREDENTIAL_MISSING

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            run_state=self.run_state,
            progress=self.progress,
            project=copy.deepcopy(self.project),
            error=self.error,
            error_kind=self.error_kind,
        )

    def publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                # Observer faults never change the run's control flow.
                logger.exception("Snapshot listener %r failed", listener)

    def transition(self, state: RunState) -> None:
        if state is not self.run_state:
            logger.info("Run state %s -> %s", self.run_state.value, state.value)
        self.run_state = state

    def record_error(self, message: str, kind: ErrorKind | None) -> None:
        self.error = message
        self.error_kind = kind

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    def require_project(self) -> Project:
        if self.project is None:
            raise SessionStateError("No project is loaded. Generate an outline first.")
        return self.project

    def ensure_editable(self) -> None:
        if self.run_state in (RunState.GENERATING, RunState.OUTLINING):
            raise SessionStateError(
                f"The project cannot be edited while the session is {self.run_state.value}."
            )
