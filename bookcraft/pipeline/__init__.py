"""
End-to-end orchestration for BookCraft outline, text, and illustration generation.
"""

from .models import Project, RunProgress, RunState, Section, SectionStatus
from .orchestrator import TEXT_FAILURE_PLACEHOLDER, BookOrchestrator
from .provider import ContentProvider, LiteLLMReplicateProvider
from .session import GenerationSession, SessionSnapshot, SessionStateError

__all__ = [
    "BookOrchestrator",
    "ContentProvider",
    "GenerationSession",
    "LiteLLMReplicateProvider",
    "Project",
    "RunProgress",
    "RunState",
    "Section",
    "SectionStatus",
    "SessionSnapshot",
    "SessionStateError",
    "TEXT_FAILURE_PLACEHOLDER",
]
