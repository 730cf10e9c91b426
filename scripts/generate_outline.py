"""
Generate an outline only, so it can be reviewed and edited before full generation.

Usage:
    python scripts/generate_outline.py \
        --topic "Practical guide to home composting" \
        --sections 6 \
        --output outline.yaml

    # then, after editing outline.yaml:
    python scripts/run_full_pipeline.py --outline outline.yaml

Environment variables:
    BOOKCRAFT_API_KEY     - or GEMINI_API_KEY / OPENAI_API_KEY / LITELLM_API_KEY
    BOOKCRAFT_TEXT_MODEL  - optional LiteLLM model override
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bookcraft import BookOrchestrator, GenerationConfig, GenerationSession  # noqa: E402
from bookcraft.common.logging_config import setup_logging  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Draft a BookCraft outline for review.")
    parser.add_argument("--config", default=None, help="Optional config YAML/JSON file.")
    parser.add_argument("--topic", default=None, help="What the document is about.")
    parser.add_argument("--title", default=None, help="Working title (fallback if the model omits one).")
    parser.add_argument("--author", dest="author_name", default=None, help="Author byline.")
    parser.add_argument("--audience", default=None, help="Target audience.")
    parser.add_argument("--tone", default=None, help="Writing tone.")
    parser.add_argument("--style", default=None, help="Illustration style.")
    parser.add_argument("--sections", dest="section_count", type=int, default=None, help="Target section count (3-15).")
    parser.add_argument("--format", choices=["document", "slide-deck"], default=None, help="Output format.")
    parser.add_argument(
        "--no-search",
        dest="enable_search",
        action="store_false",
        default=None,
        help="Disable web-search grounding while writing.",
    )
    parser.add_argument("--output", default="outline.yaml", help="Destination outline YAML.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GenerationConfig:
    overrides: dict[str, Any] = {
        "topic": args.topic,
        "title": args.title,
        "author_name": args.author_name,
        "audience": args.audience,
        "tone": args.tone,
        "style": args.style,
        "section_count": args.section_count,
        "format": args.format,
        "enable_search": args.enable_search,
    }
    if args.config:
        return GenerationConfig.from_file(args.config, **overrides)
    return GenerationConfig.from_mapping({k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    config = build_config(args)
    session = GenerationSession()
    project = BookOrchestrator().start_outline(session, config)
    if project is None:
        print(f"Outline failed: {session.error}")
        if session.needs_credential:
            print("Set BOOKCRAFT_API_KEY (or GEMINI_API_KEY / OPENAI_API_KEY) and try again.")
        return 1

    print(f"Title: {project.title}")
    for index, section in enumerate(project.sections, start=1):
        print(f"  {index:>2}. {section.title}: {section.description}")

    output_path = Path(args.output)
    output_path.write_text(project.to_yaml(), encoding="utf-8")
    print(f"\nSaved outline to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
