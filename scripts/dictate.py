#!/usr/bin/env python3
"""
MedScribe command-line dictation.

Records from the default microphone, transcribes the recording, generates
SOAP notes from the transcript and optionally stores them in the document
bucket.

Usage:
    python scripts/dictate.py                    # Press Enter to stop recording
    python scripts/dictate.py --seconds 30       # Fixed-length recording
    python scripts/dictate.py --file visit.wav   # Transcribe an existing file
    python scripts/dictate.py --save             # Upload the generated notes
    python scripts/dictate.py --list             # List stored documents
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path for ``medscribe`` imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from medscribe.core.config import get_settings  # noqa: E402
from medscribe.core.exceptions import MedScribeError, ObjectExistsError  # noqa: E402
from medscribe.core.utils import estimate_transcription_cost  # noqa: E402
from medscribe.services.dictation import DictationSession  # noqa: E402
from medscribe.services.storage import (  # noqa: E402
    DocumentLibrary,
    StorageGateway,
    default_document_name,
    normalize_document_name,
    suggest_copy_name,
)
from medscribe.services.transcription import create_transcriber, prepare_audio_file  # noqa: E402

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Prints notifications with a short severity tag."""

    def success(self, message: str) -> None:
        print(f"  OK    {message}")

    def info(self, message: str) -> None:
        print(f"  INFO  {message}")

    def warning(self, message: str) -> None:
        print(f"  WARN  {message}")

    def error(self, message: str) -> None:
        print(f"  ERROR {message}", file=sys.stderr)


async def _record(session: DictationSession, seconds: float | None) -> bool:
    """Record until Enter is pressed (or for ``seconds``). Returns True on success."""
    session.controller.add_tick_listener(lambda s: print(f"\r  REC   {session.elapsed_display}", end="", flush=True))
    if not await session.start_recording():
        return False

    if seconds is not None:
        await asyncio.sleep(seconds)
    else:
        await asyncio.to_thread(input, "  Press Enter to stop recording...\n")
    print()
    return await session.stop_recording() is not None


async def _list_documents(settings) -> int:
    gateway = StorageGateway(settings)
    try:
        entries = await DocumentLibrary(gateway).list_documents()
    finally:
        await gateway.aclose()
    for entry in entries:
        created = entry.created_at.isoformat() if entry.created_at else "-"
        print(f"  {created}  {entry.name}")
    print(f"  {len(entries)} document(s)")
    return 0


async def _save(settings, text: str, name: str | None) -> None:
    name = normalize_document_name(name or default_document_name())
    gateway = StorageGateway(settings)
    library = DocumentLibrary(gateway)
    try:
        try:
            stored = await library.create(name, text)
        except ObjectExistsError:
            print(f"  WARN  {name} already exists; saving a copy")
            stored = await library.save_as(name, suggest_copy_name(name), text)
        print(f"  SAVED {stored}")
    finally:
        await gateway.aclose()


async def main(args: argparse.Namespace) -> int:
    settings = get_settings()

    if args.list:
        return await _list_documents(settings)

    session = DictationSession(settings, notifier=ConsoleNotifier())
    async with session:
        if args.file:
            artifact = prepare_audio_file(args.file)
            print(
                f"  FILE  {args.file} ({artifact.duration_seconds:.1f}s, "
                f"~${estimate_transcription_cost(artifact.duration_seconds):.4f})"
            )
            transcriber = create_transcriber("deepgram", settings=settings)
            try:
                transcript = (await transcriber.transcribe(artifact)).transcript
            finally:
                await transcriber.aclose()
        else:
            if not await _record(session, args.seconds):
                return 1
            result = await session.transcribe()
            if result is None:
                return 1
            transcript = result.transcript

        print("\n--- Transcript ---\n" + transcript)
        if args.no_generate:
            return 0

        notes = await session.generate_document(transcript)
        if notes is None:
            return 1
        print("\n--- Notes ---\n" + notes)

    if args.save:
        await _save(settings, notes, args.name)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Record a dictation and generate SOAP notes")
    parser.add_argument("--seconds", type=float, default=None, help="Record for a fixed duration")
    parser.add_argument("--file", type=str, default=None, help="Transcribe an existing audio file")
    parser.add_argument("--no-generate", action="store_true", help="Stop after transcription")
    parser.add_argument("--save", action="store_true", help="Upload the generated notes")
    parser.add_argument("--name", type=str, default=None, help="Document name for --save")
    parser.add_argument("--list", action="store_true", help="List stored documents and exit")
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper())
    try:
        sys.exit(asyncio.run(main(args)))
    except MedScribeError as exc:
        print(f"  ERROR {exc.detail}", file=sys.stderr)
        sys.exit(1)
