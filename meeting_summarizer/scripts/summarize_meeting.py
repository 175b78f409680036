"""Command-line front end that walks a recording or transcript through the API.

Run a local server first (e.g. ``python -m meeting_summarizer``) then execute:

    python -m meeting_summarizer.scripts.summarize_meeting standup.mp4
    python -m meeting_summarizer.scripts.summarize_meeting notes.txt --refine "List only the action items"
    python -m meeting_summarizer.scripts.summarize_meeting notes.txt --chat

Environment variables:
    MEETING_API_URL: target base URL (default: http://localhost:5000)
"""
from __future__ import annotations

import argparse
import itertools
import mimetypes
import os
import sys
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TextIO

from meeting_summarizer.client import MeetingSummarizerClient
from meeting_summarizer.config import configure_logging
from meeting_summarizer.errors import InvalidInput
from meeting_summarizer.sessions import MeetingSession
from meeting_summarizer.summarization.model_output import render_markdown, render_text
from meeting_summarizer.uploads import MEDIA, classify


def guess_content_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def load_into_session(session: MeetingSession, path: Path) -> bool:
    """Route ``path`` through transcription (media) or the transcript upload branch."""

    content = path.read_bytes()
    content_type = guess_content_type(path)
    try:
        kind = classify(content_type, path.name)
    except InvalidInput as exc:
        session.error = exc.message
        return False

    if kind == MEDIA:
        if not session.select_media(path.name, content, content_type):
            return False
        return session.transcribe() is not None
    return session.upload_transcript(path.name, content, content_type) is not None


def run(
    session: MeetingSession,
    path: Path,
    *,
    refinements: Iterable[str] = (),
    render: Callable = render_text,
    out: TextIO = sys.stdout,
) -> int:
    if not load_into_session(session, path):
        print(f"error: {session.error}", file=out)
        return 1

    summary = session.summarize()
    if summary is None:
        print(f"error: {session.error}", file=out)
        return 1
    print(render(summary), file=out)

    status = 0
    for instruction in refinements:
        reply = session.refine(instruction)
        if reply is None or session.error:
            print(f"error: {session.error}", file=out)
            status = 1
            continue
        print(f"\n> {instruction}\n{reply.content}", file=out)
    return status


def _interactive_instructions(prompt: str = "refine> ") -> Iterable[str]:
    while True:
        try:
            line = input(prompt)
        except EOFError:
            return
        if line.strip() in {"", "quit", "exit"}:
            return
        yield line


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Transcribe and summarize a meeting recording or transcript")
    parser.add_argument("path", type=Path, help="Audio/video recording or plain-text transcript")
    parser.add_argument(
        "--base-url",
        default=os.getenv("MEETING_API_URL", "http://localhost:5000"),
        help="Meeting summarizer API base URL",
    )
    parser.add_argument("--timeout", type=float, default=600.0, help="Seconds to wait for each API call")
    parser.add_argument(
        "--refine",
        action="append",
        default=[],
        metavar="INSTRUCTION",
        help="Follow-up request to send after the summary (repeatable)",
    )
    parser.add_argument("--chat", action="store_true", help="Read follow-up requests from stdin")
    parser.add_argument("--format", choices=("text", "markdown"), default="text", help="Summary output format")
    parser.add_argument("--log-level", default="warning")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    if not args.path.is_file():
        parser.error(f"{args.path} is not a file")

    client = MeetingSummarizerClient(args.base_url, timeout=args.timeout)
    session = MeetingSession(client)
    refinements: Iterable[str] = args.refine
    if args.chat:
        refinements = itertools.chain(args.refine, _interactive_instructions())

    render = render_markdown if args.format == "markdown" else render_text
    return run(session, args.path, refinements=refinements, render=render)


if __name__ == "__main__":
    sys.exit(main())
