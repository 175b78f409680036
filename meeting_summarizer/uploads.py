"""Upload relay: validates a single uploaded file and scopes it to a temp path.

The temporary copy never outlives the ``scoped_upload`` block, whatever the
transcription or parsing step does with it.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

from meeting_summarizer.errors import InvalidInput

logger = logging.getLogger(__name__)

MEDIA = "media"
TRANSCRIPT = "transcript"

_CHUNK_SIZE = 1024 * 1024


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    path: Path
    size: int

    @property
    def kind(self) -> str:
        return classify(self.content_type, self.filename)


def _effective_type(content_type: str | None, filename: str | None) -> str:
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename or "")
    return (guessed or declared).lower()


def classify(content_type: str | None, filename: str | None = None) -> str:
    """Return ``MEDIA`` for audio/video uploads and ``TRANSCRIPT`` for plain text."""

    effective = _effective_type(content_type, filename)
    if effective.startswith(("audio/", "video/")):
        return MEDIA
    if effective == "text/plain":
        return TRANSCRIPT
    raise InvalidInput(
        f"Unsupported media type {effective or 'unknown'!r}; upload audio/video or a plain-text transcript",
        status_code=415,
    )


def _suffix_for(kind: str, effective: str, filename: str | None) -> str:
    if kind == TRANSCRIPT:
        return ".txt"
    # A media upload keeps its extension only when the extension itself names audio or video.
    name_suffix = Path(filename or "").suffix.lower()
    guessed, _ = mimetypes.guess_type(filename or "")
    if name_suffix and guessed and guessed.startswith(("audio/", "video/")):
        return name_suffix
    return mimetypes.guess_extension(effective) or ".media"


@contextmanager
def scoped_upload(
    stream: BinaryIO,
    *,
    filename: str | None,
    content_type: str | None,
    directory: str | None = None,
    max_bytes: int | None = None,
) -> Iterator[UploadedFile]:
    """Copy ``stream`` into a temporary file and remove it on every exit path."""

    kind = classify(content_type, filename)
    suffix = _suffix_for(kind, _effective_type(content_type, filename), filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    handle = tempfile.NamedTemporaryFile(prefix="upload-", suffix=suffix, dir=directory, delete=False)
    path = Path(handle.name)
    try:
        size = 0
        with handle:
            while True:
                chunk = stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if max_bytes is not None and size > max_bytes:
                    raise InvalidInput(f"Upload exceeds {max_bytes} bytes", status_code=413)
                handle.write(chunk)

        logger.debug("stored upload %s (%d bytes) at %s", filename, size, path)
        yield UploadedFile(
            filename=filename or path.name,
            content_type=_effective_type(content_type, filename),
            path=path,
            size=size,
        )
    finally:
        path.unlink(missing_ok=True)


def read_transcript(upload: UploadedFile) -> str:
    """Decode an uploaded transcript file as UTF-8, dropping a BOM if present."""

    try:
        return upload.path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise InvalidInput("Transcript file must be UTF-8 encoded text") from exc

