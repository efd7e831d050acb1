"""Standalone CLI for the SmartLens ingestion pipeline.

Usage::

    python -m smartlens.cli add-user "Ada Lovelace" ada@example.com
    python -m smartlens.cli ingest notes.jpg --user-id 1
    python -m smartlens.cli ingest lecture.pdf --user-id 1 --title "Week 3" --json

``ingest`` runs exactly the pipeline behind ``POST /api/notes/upload``
against the configured database and storage directory.  The outcome goes to
stdout; progress and logs go to stderr.  Exit code is 1 when the pipeline
rejects or fails the upload.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from smartlens.models.document import UploadedAsset
from smartlens.models.pipeline import IngestionOutcome
from smartlens.utils.errors import ExtractionTooShortError, SmartLensError
from smartlens.utils.logging import configure_logging

_CONTENT_TYPE_MAP = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
}


def _configure_cli_logging(quiet: bool, log_level: str) -> None:
    """Send all structlog and stdlib logging to stderr.

    Must run before the first log call, since structlog caches loggers on
    first use.
    """
    configure_logging(log_level="WARNING" if quiet else log_level, stream=sys.stderr)


def _format_text_output(outcome: IngestionOutcome) -> str:
    note = outcome.note
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  SmartLens -- Note #{note.id}")
    lines.append(sep)
    lines.append(outcome.message)
    lines.append("")
    lines.append(f"Title:      {note.title}")
    lines.append(f"Source:     {note.extraction_source.value}  |  {outcome.extracted_text_length} chars")
    lines.append(f"Stored at:  {note.original_image_url}")
    if outcome.is_duplicate:
        lines.append("Duplicate:  yes (existing note returned)")
    lines.append("")

    analysis = note.analysis_result
    if analysis is not None:
        lines.append("ANALYSIS")
        lines.append("-" * 40)
        lines.append(f"  Category:  {analysis.category.value}  |  Sentiment: {analysis.sentiment.value}")
        if analysis.summary:
            lines.append(f"  Summary:   {analysis.summary}")
        for point in analysis.key_points:
            lines.append(f"    - {point}")
        if analysis.keywords:
            lines.append(f"  Keywords:  {', '.join(analysis.keywords)}")
        if analysis.action_items:
            lines.append("  Actions:")
            for item in analysis.action_items:
                lines.append(f"    [ ] {item}")
        lines.append("")
    elif outcome.analysis_failure_reason is not None:
        lines.append(f"Analysis skipped: {outcome.analysis_failure_reason.value}")
        lines.append("")

    return "\n".join(lines)


def _format_json_output(outcome: IngestionOutcome) -> str:
    from smartlens.api.schemas import UploadResponse

    return UploadResponse.from_outcome(outcome).model_dump_json(indent=2)


async def _run_ingest(path: Path, user_id: int, title: str | None, json_output: bool) -> int:
    # Deferred import: smartlens.main builds settings and the FastAPI app.
    from smartlens.main import build_pipeline

    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    try:
        components = build_pipeline()
        await components["note_repository"].initialize()
        await components["storage"].initialize()
    except SmartLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    data = path.read_bytes()
    asset = UploadedAsset(
        user_id=user_id,
        filename=path.name,
        media_type=_CONTENT_TYPE_MAP.get(path.suffix.lower(), "application/octet-stream"),
        size=len(data),
        data=data,
    )

    print(f"Ingesting: {path.name} ({len(data):,} bytes)", file=sys.stderr)
    start = time.monotonic()
    try:
        outcome = await components["orchestrator"].ingest(user_id, asset, title)
    except ExtractionTooShortError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        if exc.extracted_text:
            print(f"Extracted text:\n{exc.extracted_text}", file=sys.stderr)
        return 1
    except SmartLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)

    print(_format_json_output(outcome) if json_output else _format_text_output(outcome))
    return 0


async def _run_add_user(name: str, email: str) -> int:
    from smartlens.main import build_pipeline

    try:
        repository = build_pipeline()["note_repository"]
        await repository.initialize()
        user_id = await repository.create_user(name, email)
    except SmartLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps({"id": user_id, "name": name, "email": email}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m smartlens.cli",
        description="Run SmartLens document ingestion from the command line.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_user = subparsers.add_parser("add-user", help="Create a user to own notes.")
    add_user.add_argument("name", help="Display name.")
    add_user.add_argument("email", help="Unique email address.")

    ingest = subparsers.add_parser("ingest", help="Turn a document into a note.")
    ingest.add_argument("file", type=str, help="Path to a JPEG, PNG or PDF file.")
    ingest.add_argument("--user-id", type=int, required=True, help="Owning user id.")
    ingest.add_argument("--title", type=str, default=None, help="Note title (default: derived from text).")
    ingest.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the upload response as JSON.",
    )
    ingest.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress log output below WARNING.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits 0 on success, 1 on any pipeline error."""
    args = _build_parser().parse_args(argv)

    from smartlens.main import settings

    quiet = getattr(args, "quiet", False) or getattr(args, "json_output", False)
    _configure_cli_logging(quiet, settings.log_level)

    if args.command == "add-user":
        exit_code = asyncio.run(_run_add_user(args.name, args.email))
    else:
        exit_code = asyncio.run(
            _run_ingest(Path(args.file).resolve(), args.user_id, args.title, args.json_output)
        )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
