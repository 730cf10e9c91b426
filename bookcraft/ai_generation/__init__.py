"""
AI image generation package for BookCraft.
"""

from .prompting import (
    ImagePrompt,
    build_cover_prompt,
    build_section_illustration_prompt,
)
from .replicate_service import GeneratedImage, ReplicateImageGenerator

__all__ = [
    "GeneratedImage",
    "ImagePrompt",
    "ReplicateImageGenerator",
    "build_cover_prompt",
    "build_section_illustration_prompt",
]
