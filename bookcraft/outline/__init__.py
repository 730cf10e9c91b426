"""
Outline synthesis and section writing for BookCraft documents.
"""

from .config import DocumentFormat, GenerationConfig, load_mapping_file
from .outline_service import (
    BookOutlineGenerator,
    OutlineDraft,
    OutlineEntry,
    parse_outline_response,
)
from .prompting import ChatPrompt, build_outline_prompt, build_section_prompt
from .section_writer import SectionTextWriter

__all__ = [
    "DocumentFormat",
    "GenerationConfig",
    "load_mapping_file",
    "BookOutlineGenerator",
    "OutlineDraft",
    "OutlineEntry",
    "parse_outline_response",
    "ChatPrompt",
    "build_outline_prompt",
    "build_section_prompt",
    "SectionTextWriter",
]
