"""Lightweight smoke test harness for the meeting summarizer.

Runs the transcript branch of the workflow against the in-process FastAPI app
with summarization forced offline, so it needs no API keys, no Whisper
install and no external server process.
"""
from __future__ import annotations

import importlib
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Dict, Tuple
from unittest.mock import patch

from fastapi.testclient import TestClient

from meeting_summarizer.client import MeetingSummarizerClient
from meeting_summarizer.sessions import MeetingSession

SMOKE_TRANSCRIPT = (
    "Welcome to the weekly sync. The release moves to Friday. "
    "Dana will update the changelog. Any other business? None."
)


@contextmanager
def _patched_env(upload_dir: str):
    env_updates: Dict[str, str] = {
        "MEETING_UPLOAD_DIR": upload_dir,
        "MEETING_SUMMARIZER_PROVIDER": "openrouter",
        "OPENROUTER_API_KEY": "",
    }
    with patch.dict(os.environ, env_updates, clear=False):
        yield


def _load_server():
    # Reload to ensure settings reflect patched environment variables.
    return importlib.reload(importlib.import_module("meeting_summarizer.api.server"))


def run_smoke(upload_dir: str | None = None) -> Tuple[str, Dict[str, object]]:
    """Execute an in-process smoke run and return a human-friendly report.

    The flow exercises health, transcript upload through the relay, offline
    summarization and one chat-refine round, then checks that no upload was
    left behind.
    """

    with tempfile.TemporaryDirectory() as default_dir, _patched_env(upload_dir or default_dir):
        server = _load_server()
        with TestClient(server.app) as http:
            client = MeetingSummarizerClient("", http_client=http)
            session = MeetingSession(client, session_id="smoke-session")

            health = client.health()
            session.upload_transcript("smoke.txt", SMOKE_TRANSCRIPT.encode("utf-8"))
            summary = session.summarize()
            reply = session.refine("Who owns the changelog?")

            target = upload_dir or default_dir
            leftovers = sorted(os.listdir(target)) if os.path.isdir(target) else []
            report = {
                "health": health,
                "session": session.view(),
                "summary": summary.to_dict() if summary else None,
                "refine_reply": reply.content if reply else None,
                "leftover_uploads": leftovers,
                "metrics": client.metrics()["counters"],
            }

    status = "ok" if health.get("ok") and summary and not leftovers else "failed"
    return status, report


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Run an in-process smoke test against the API")
    parser.add_argument("--upload-dir", dest="upload_dir", default=None, help="Directory for scoped uploads")

    args = parser.parse_args()
    status, report = run_smoke(upload_dir=args.upload_dir)
    print(json.dumps({"status": status, "report": report}, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
