import subprocess
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from meeting_summarizer.errors import TranscriptionFailed
from meeting_summarizer.stt.whisper_service import WhisperCliTranscriber


def _leftovers(upload_dir):
    return sorted(path.name for path in upload_dir.iterdir()) if upload_dir.exists() else []


class RecordingTranscriber:
    name = "fake"

    def __init__(self, text="Hello everyone. Thanks for joining.", error=None):
        self.text = text
        self.error = error
        self.seen = []

    def transcribe(self, audio_path, *, filename, content_type):
        self.seen.append(
            {
                "exists": audio_path.exists(),
                "bytes": audio_path.read_bytes(),
                "filename": filename,
                "content_type": content_type,
            }
        )
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def server(reload_server):
    return reload_server()


@pytest.fixture
def client(server):
    return TestClient(server.app)


def test_missing_file_is_rejected(client, upload_dir):
    response = client.post("/api/transcribe")

    assert response.status_code == 400
    assert response.json() == {"error": "No transcript file provided"}
    assert _leftovers(upload_dir) == []


def test_text_transcript_is_returned_verbatim(client, upload_dir):
    content = "Alice: we ship Friday.\nBob: agreed.\n"

    response = client.post("/api/transcribe", files={"file": ("standup.txt", content.encode(), "text/plain")})

    assert response.status_code == 200
    assert response.json() == {"text": content}
    assert _leftovers(upload_dir) == []


def test_media_upload_goes_through_transcriber(server, client, upload_dir):
    fake = RecordingTranscriber()
    server.transcriber = fake

    response = client.post("/api/transcribe", files={"file": ("standup.mp4", b"\x00\x01video", "video/mp4")})

    assert response.status_code == 200
    assert response.json() == {"text": "Hello everyone. Thanks for joining."}
    assert fake.seen == [
        {"exists": True, "bytes": b"\x00\x01video", "filename": "standup.mp4", "content_type": "video/mp4"}
    ]
    assert _leftovers(upload_dir) == []


def test_transcription_failure_is_reported_and_cleaned_up(server, client, upload_dir):
    def runner(command, **kwargs):
        return subprocess.CompletedProcess(command, 1, stdout="", stderr="unsupported codec")

    server.transcriber = WhisperCliTranscriber(runner=runner)

    response = client.post("/api/transcribe", files={"file": ("call.mp3", b"ID3", "audio/mpeg")})

    assert response.status_code == 502
    assert "unsupported codec" in response.json()["error"]
    assert _leftovers(upload_dir) == []


def test_backend_error_carries_its_message(server, client, upload_dir):
    server.transcriber = RecordingTranscriber(error=TranscriptionFailed("backend offline"))

    response = client.post("/api/transcribe", files={"file": ("call.wav", b"RIFF", "audio/wav")})

    assert response.status_code == 502
    assert response.json() == {"error": "backend offline"}
    assert _leftovers(upload_dir) == []


def test_unsupported_media_type(client, upload_dir):
    response = client.post("/api/transcribe", files={"file": ("agenda.pdf", b"%PDF-1.4", "application/pdf")})

    assert response.status_code == 415
    assert "application/pdf" in response.json()["error"]
    assert _leftovers(upload_dir) == []


def test_upload_size_limit(reload_server, upload_dir):
    server = reload_server(MEETING_MAX_UPLOAD_BYTES="8")
    server.transcriber = RecordingTranscriber()
    client = TestClient(server.app)

    response = client.post("/api/transcribe", files={"file": ("call.mp3", b"x" * 64, "audio/mpeg")})

    assert response.status_code == 413
    assert server.transcriber.seen == []
    assert _leftovers(upload_dir) == []


def test_outcomes_are_counted(server, client):
    server.transcriber = RecordingTranscriber(error=TranscriptionFailed("nope"))

    client.post("/api/transcribe", files={"file": ("a.txt", b"hi", "text/plain")})
    client.post("/api/transcribe", files={"file": ("a.mp3", b"ID3", "audio/mpeg")})

    counters = client.get("/metrics").json()["counters"]
    assert counters["transcribe.calls"] == 2
    assert counters["transcribe.failures"] == 1


def test_audio_with_a_txt_filename_is_transcribed(server, client, upload_dir):
    def runner(command, **kwargs):
        source = Path(command[1])
        assert source.suffix != ".txt"
        source.with_suffix(".txt").write_text("Recorded on a phone.", encoding="utf-8")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    server.transcriber = WhisperCliTranscriber(runner=runner)

    response = client.post("/api/transcribe", files={"file": ("voice-memo.txt", b"ID3", "audio/mpeg")})

    assert response.status_code == 200
    assert response.json() == {"text": "Recorded on a phone."}
    assert _leftovers(upload_dir) == []
