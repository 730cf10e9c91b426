"""
Prompt construction utilities for outline synthesis and section writing.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import DocumentFormat, GenerationConfig

OUTLINE_FORMAT_INSTRUCTIONS = {
    DocumentFormat.SLIDE_DECK: (
        "Format: Slide deck. Structure the outline as key 'Slides' or 'Sections' "
        "that are punchy and visual."
    ),
    DocumentFormat.DOCUMENT: "Format: Standard eBook. Structure standard chapters.",
}

SECTION_FORMAT_INSTRUCTIONS = {
    DocumentFormat.SLIDE_DECK: (
        "FORMAT: Slide deck. Write short, punchy, high-impact text suitable for slides. "
        "Use bullet points heavily. Avoid long paragraphs."
    ),
    DocumentFormat.DOCUMENT: (
        "FORMAT: Standard eBook. Write engaging long-form content with good flow."
    ),
}


@dataclass(frozen=True)
class ChatPrompt:
    """
    Container for the system and user prompts passed to the chat model.
    """

    system: str
    user: str

    def as_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_outline_prompt(config: GenerationConfig) -> ChatPrompt:
    """
    Build the prompt pair used to solicit a structured JSON outline.
    """
    system_prompt = """You are an expert book editor. You create structured JSON outlines for non-fiction projects.

Output format:
Respond with valid JSON matching this schema:
{
  "title": "string, a catchy, professional title",
  "sections": [
    {
      "title": "string, chapter or slide title",
      "description": "string, brief description of contents"
    },
    ...
  ]
}

Output strictly valid JSON. No markdown code blocks. Do not include commentary outside the JSON."""

    user_prompt = f"""Create the outline for this project:

{config.summary_for_prompt()}
{OUTLINE_FORMAT_INSTRUCTIONS[config.format]}"""

    return ChatPrompt(system=system_prompt, user=user_prompt)


def build_section_prompt(
    *,
    section_title: str,
    section_description: str,
    project_title: str,
    config: GenerationConfig,
    prior_context: str | None = None,
) -> ChatPrompt:
    """
    Build the prompt pair for writing one section.

    ``prior_context`` is the previous section's description and is used to keep
    consecutive sections consistent.
    """
    author = config.author_name or "AI"
    system_prompt = f"""You are a professional writer named {author}. You are writing a section for "{project_title}".
Tone: {config.tone}. Audience: {config.audience}.
{SECTION_FORMAT_INSTRUCTIONS[config.format]}

RULES:
1. Write in Markdown format.
2. **Visuals**: Use SVG diagrams ONLY when explaining a complex logic, flow, or data structure. Do NOT generate an SVG for simple decorative purposes.
3. Wrap the SVG code in ```svg ... ``` blocks.
4. If an SVG is generated, do not describe it in text immediately before or after, let the diagram speak for itself."""

    if prior_context:
        system_prompt += (
            f"\nContext: The previous section covered: {prior_context}. Ensure continuity."
        )

    user_prompt = f"""Write the full content for section: "{section_title}".
Description: {section_description}.
Make it highly visual and interesting."""

    return ChatPrompt(system=system_prompt, user=user_prompt)
