import io
import mimetypes

import pytest

from meeting_summarizer.errors import InvalidInput
from meeting_summarizer.uploads import MEDIA, TRANSCRIPT, classify, read_transcript, scoped_upload


@pytest.mark.parametrize(
    "content_type,filename,expected",
    [
        ("audio/mpeg", "call.mp3", MEDIA),
        ("video/mp4", "call.mp4", MEDIA),
        ("audio/wav; codecs=1", "call.wav", MEDIA),
        ("text/plain", "notes.txt", TRANSCRIPT),
        ("text/plain; charset=utf-8", "notes", TRANSCRIPT),
        ("application/octet-stream", "notes.txt", TRANSCRIPT),
        ("", "call.mp3", MEDIA),
    ],
)
def test_classify(content_type, filename, expected):
    assert classify(content_type, filename) == expected


def test_classify_rejects_other_types():
    with pytest.raises(InvalidInput) as excinfo:
        classify("application/pdf", "agenda.pdf")

    assert excinfo.value.status_code == 415


def test_scoped_upload_removes_file_after_block(tmp_path):
    with scoped_upload(io.BytesIO(b"hello"), filename="notes.txt", content_type="text/plain", directory=str(tmp_path)) as upload:
        assert upload.path.exists()
        assert upload.path.parent == tmp_path
        assert upload.size == 5
        assert upload.kind == TRANSCRIPT
        stored = upload.path

    assert not stored.exists()
    assert list(tmp_path.iterdir()) == []


def test_scoped_upload_removes_file_when_block_raises(tmp_path):
    with pytest.raises(RuntimeError):
        with scoped_upload(io.BytesIO(b"\x00"), filename="call.mp3", content_type="audio/mpeg", directory=str(tmp_path)) as upload:
            assert upload.path.suffix == ".mp3"
            raise RuntimeError("transcriber crashed")

    assert list(tmp_path.iterdir()) == []


def test_rejected_type_creates_nothing(tmp_path):
    target = tmp_path / "uploads"

    with pytest.raises(InvalidInput):
        with scoped_upload(io.BytesIO(b"%PDF"), filename="a.pdf", content_type="application/pdf", directory=str(target)):
            pass

    assert not target.exists()


def test_oversized_upload_is_rejected_and_removed(tmp_path):
    with pytest.raises(InvalidInput) as excinfo:
        with scoped_upload(
            io.BytesIO(b"x" * 64),
            filename="call.mp3",
            content_type="audio/mpeg",
            directory=str(tmp_path),
            max_bytes=10,
        ):
            pass

    assert excinfo.value.status_code == 413
    assert list(tmp_path.iterdir()) == []


def test_read_transcript_strips_bom(tmp_path):
    data = "\ufeffHello team.".encode("utf-8")
    with scoped_upload(io.BytesIO(data), filename="notes.txt", content_type="text/plain", directory=str(tmp_path)) as upload:
        assert read_transcript(upload) == "Hello team."


def test_read_transcript_rejects_invalid_utf8(tmp_path):
    with scoped_upload(io.BytesIO(b"\xff\xfe\xfa"), filename="notes.txt", content_type="text/plain", directory=str(tmp_path)) as upload:
        with pytest.raises(InvalidInput, match="UTF-8"):
            read_transcript(upload)


def test_media_named_like_a_transcript_gets_a_media_suffix(tmp_path):
    with scoped_upload(io.BytesIO(b"ID3"), filename="call.txt", content_type="audio/mpeg", directory=str(tmp_path)) as upload:
        assert upload.kind == MEDIA
        assert upload.path.suffix != ".txt"
        assert upload.path.suffix == (mimetypes.guess_extension("audio/mpeg") or ".media")


def test_media_keeps_its_own_extension(tmp_path):
    with scoped_upload(io.BytesIO(b"RIFF"), filename="call.WAV", content_type="audio/wav", directory=str(tmp_path)) as upload:
        assert upload.path.suffix == ".wav"
