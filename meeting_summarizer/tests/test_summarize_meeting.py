import io

import pytest
from fastapi.testclient import TestClient

from meeting_summarizer.client import MeetingSummarizerClient
from meeting_summarizer.scripts import summarize_meeting
from meeting_summarizer.sessions import MeetingSession
from meeting_summarizer.summarization.model_output import render_markdown

MEETING = "We will ship Friday. Alice owns QA. Bob will review the doc. No further comments."


class FakeTranscriber:
    name = "fake"

    def transcribe(self, audio_path, *, filename, content_type):
        return MEETING


@pytest.fixture
def server(reload_server):
    return reload_server()


@pytest.fixture
def session(server):
    return MeetingSession(MeetingSummarizerClient("", http_client=TestClient(server.app)))


def test_transcript_file_is_summarized(session, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text(MEETING, encoding="utf-8")
    out = io.StringIO()

    status = summarize_meeting.run(session, path, refinements=["Shorter please"], out=out)

    assert status == 0
    output = out.getvalue()
    assert output.startswith("Summary:\nWe will ship Friday. Alice owns QA. Bob will review the doc.")
    assert "> Shorter please" in output


def test_recording_goes_through_transcription(server, session, tmp_path):
    server.transcriber = FakeTranscriber()
    path = tmp_path / "standup.mp3"
    path.write_bytes(b"ID3")
    out = io.StringIO()

    status = summarize_meeting.run(session, path, render=render_markdown, out=out)

    assert status == 0
    assert out.getvalue().startswith("## Summary\nWe will ship Friday.")


def test_unsupported_file_reports_an_error(session, tmp_path):
    path = tmp_path / "agenda.pdf"
    path.write_bytes(b"%PDF")
    out = io.StringIO()

    assert summarize_meeting.run(session, path, out=out) == 1
    assert out.getvalue().startswith("error: Unsupported media type")


def test_empty_transcript_reports_an_error(session, tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("  ", encoding="utf-8")
    out = io.StringIO()

    assert summarize_meeting.run(session, path, out=out) == 1
    assert out.getvalue() == "error: The transcript is empty\n"


def test_guess_content_type(tmp_path):
    assert summarize_meeting.guess_content_type(tmp_path / "a.mp4") == "video/mp4"
    assert summarize_meeting.guess_content_type(tmp_path / "a.unknownext") == "application/octet-stream"
