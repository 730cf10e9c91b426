"""
CLI to run the complete BookCraft pipeline end-to-end.

Usage:
    python scripts/run_full_pipeline.py \
        --config project.yaml \
        --review \
        --output bookcraft_project.yaml

    python scripts/run_full_pipeline.py \
        --outline reviewed_outline.yaml \
        --output bookcraft_project.yaml \
        --pdf bookcraft_project.pdf
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bookcraft import (  # noqa: E402
    BookOrchestrator,
    GenerationConfig,
    GenerationSession,
    Project,
    ProjectPDFBuilder,
    RunState,
)
from bookcraft.common.logging_config import setup_logging  # noqa: E402
from bookcraft.pipeline import SessionSnapshot  # noqa: E402

CREDENTIAL_HINT = (
    "Set BOOKCRAFT_API_KEY (or GEMINI_API_KEY / OPENAI_API_KEY) for text and "
    "REPLICATE_API_TOKEN for images, then re-run with --outline to resume."
)


class ProgressTracker:
    """
    Mirrors session snapshots onto a tqdm progress bar.
    """

    def __init__(self) -> None:
        self._bar: tqdm | None = None
        self._last_state: RunState | None = None
        self._last_message = ""

    def __call__(self, snapshot: SessionSnapshot) -> None:
        if snapshot.run_state is not self._last_state:
            self._on_state_change(snapshot)
            self._last_state = snapshot.run_state

        progress = snapshot.progress
        if snapshot.run_state is RunState.GENERATING:
            if self._bar is None:
                self._bar = tqdm(total=progress.steps_total, desc="Generating", unit="step")
            if self._bar.total != progress.steps_total:
                self._bar.total = progress.steps_total
            delta = progress.steps_completed - self._bar.n
            if delta > 0:
                self._bar.update(delta)

        if progress.status_message and progress.status_message != self._last_message:
            self._last_message = progress.status_message
            if self._bar is not None:
                truncated = progress.status_message
                if len(truncated) > 45:
                    truncated = truncated[:45] + "…"
                self._bar.set_description(truncated)

    def _on_state_change(self, snapshot: SessionSnapshot) -> None:
        match snapshot.run_state:
            case RunState.OUTLINING:
                self._write("[1/3] Drafting the outline...")
            case RunState.REVIEWING:
                count = len(snapshot.project.sections) if snapshot.project else 0
                self._write(f"[1/3] Outline ready with {count} sections.")
            case RunState.GENERATING:
                self._write("[2/3] Writing and illustrating sections...")
            case RunState.COMPLETED:
                self.close()
                self._write("[3/3] Generation complete.")
            case RunState.FAILED:
                self.close()
                self._write(f"Generation failed: {snapshot.error}")
            case RunState.IDLE:
                if snapshot.error:
                    self._write(f"Outline failed: {snapshot.error}")

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the full BookCraft generation pipeline.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--config",
        help="Path to a generation config YAML/JSON file.",
    )
    source.add_argument(
        "--outline",
        help="Path to a reviewed project YAML (output of generate_outline.py or a previous run).",
    )
    parser.add_argument(
        "--topic",
        default=None,
        help="Override the topic from the config file.",
    )
    parser.add_argument(
        "--sections",
        type=int,
        default=None,
        help="Override the target section count (3-15).",
    )
    parser.add_argument(
        "--format",
        choices=["document", "slide-deck"],
        default=None,
        help="Override the output format.",
    )
    parser.add_argument(
        "--review",
        action="store_true",
        help="Pause after the outline so it can be edited before generation.",
    )
    parser.add_argument(
        "--output",
        default="bookcraft_project.yaml",
        help="Output YAML file to store the generated project.",
    )
    parser.add_argument(
        "--pdf",
        default=None,
        help="Optional PDF path to export once generation completes.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def review_outline(project: Project, output_path: Path) -> Project:
    """Write the outline to disk, wait for the user, then reload their edits."""
    output_path.write_text(project.to_yaml(), encoding="utf-8")
    tqdm.write(f"Outline saved to {output_path}. Edit titles/descriptions, add or remove sections.")
    input("Press Enter to continue with generation...")
    return Project.from_yaml(output_path)


def main() -> int:
    args = parse_args()
    setup_logging(verbose=args.verbose)

    orchestrator = BookOrchestrator()
    session = GenerationSession()
    tracker = ProgressTracker()
    session.subscribe(tracker)
    output_path = Path(args.output)

    try:
        if args.config:
            config = GenerationConfig.from_file(
                args.config,
                topic=args.topic,
                section_count=args.sections,
                format=args.format,
            )
            if orchestrator.start_outline(session, config) is None:
                if session.needs_credential:
                    tqdm.write(CREDENTIAL_HINT)
                return 1
            if args.review:
                session.project = review_outline(session.require_project(), output_path)
        else:
            session.project = Project.from_yaml(args.outline)

        final_state = orchestrator.start_or_resume_generation(session)
    finally:
        tracker.close()

    project = session.require_project()
    output_path.write_text(project.to_yaml(), encoding="utf-8")
    print(f"Saved project to {output_path}")

    if final_state is not RunState.COMPLETED:
        if session.needs_credential:
            tqdm.write(CREDENTIAL_HINT)
        return 1

    if args.pdf:
        pages = ProjectPDFBuilder().build(project, args.pdf)
        print(f"Rendered {pages} pages to {args.pdf}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
