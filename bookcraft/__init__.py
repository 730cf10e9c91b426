"""
BookCraft package exposing outline synthesis, the generation pipeline, and PDF export.
"""

from .outline import DocumentFormat, GenerationConfig
from .pdf_generation import ProjectPDFBuilder
from .pipeline import (
    BookOrchestrator,
    GenerationSession,
    Project,
    RunState,
    Section,
    SectionStatus,
)

__all__ = [
    "BookOrchestrator",
    "DocumentFormat",
    "GenerationConfig",
    "GenerationSession",
    "Project",
    "ProjectPDFBuilder",
    "RunState",
    "Section",
    "SectionStatus",
]
