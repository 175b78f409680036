"""Whisper-based transcription backends.

Two interchangeable strategies are supported, selected by configuration:
- ``local``: shell out to the Whisper CLI and read the ``.txt`` it writes
  next to the upload
- ``remote``: forward the upload to an OpenAI-compatible
  ``/audio/transcriptions`` endpoint

Both return plain transcript text and raise ``TranscriptionFailed`` on any
failure. Neither retries.
"""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

import openai
from openai import OpenAI

from meeting_summarizer.config import ServiceSettings
from meeting_summarizer.errors import TranscriptionFailed

logger = logging.getLogger(__name__)

_STDERR_TAIL = 500


class Transcriber(Protocol):
    name: str

    def transcribe(self, audio_path: Path, *, filename: str, content_type: str) -> str:
        ...


class WhisperCliTranscriber:
    """Runs ``whisper <file> --output_format txt`` and reads the sibling output."""

    name = "local"

    def __init__(
        self,
        command: str = "whisper",
        model: str = "small",
        language: str = "en",
        timeout: float | None = 600.0,
        runner: Callable[..., subprocess.CompletedProcess] | None = None,
    ):
        self.command = command
        self.model = model
        self.language = language
        self.timeout = timeout
        self._run = runner or subprocess.run

    def build_command(self, audio_path: Path) -> List[str]:
        return [
            self.command,
            str(audio_path),
            "--model",
            self.model,
            "--language",
            self.language,
            "--output_format",
            "txt",
            "--output_dir",
            str(audio_path.parent),
        ]

    def transcribe(self, audio_path: Path, *, filename: str, content_type: str) -> str:
        output_path = audio_path.with_suffix(".txt")
        if output_path == audio_path:
            # Whisper would overwrite the upload with its own output.
            raise TranscriptionFailed("Refusing to transcribe a .txt file with the Whisper CLI")

        command = self.build_command(audio_path)
        logger.info("running whisper on %s", filename, extra={"command": command[0], "model": self.model})
        try:
            completed = self._run(command, capture_output=True, text=True, timeout=self.timeout, check=False)
        except FileNotFoundError as exc:
            raise TranscriptionFailed(f"Whisper CLI not found: {self.command}") from exc
        except subprocess.TimeoutExpired as exc:
            output_path.unlink(missing_ok=True)
            raise TranscriptionFailed(f"Whisper transcription timed out after {self.timeout:g}s") from exc

        try:
            if completed.returncode != 0:
                stderr = (completed.stderr or "").strip()[-_STDERR_TAIL:]
                logger.error("whisper exited with %s: %s", completed.returncode, stderr)
                raise TranscriptionFailed(
                    f"Whisper transcription failed (exit code {completed.returncode}): {stderr or 'no output'}"
                )
            if not output_path.exists():
                raise TranscriptionFailed(f"Whisper did not produce the expected output file {output_path.name}")
            return output_path.read_text(encoding="utf-8").strip()
        finally:
            output_path.unlink(missing_ok=True)


class RemoteTranscriber:
    """Sends the upload to an OpenAI-compatible transcription endpoint."""

    name = "remote"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        timeout: float | None = 600.0,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
            logger.info("remote transcription client initialized for %s", base_url)

    def transcribe(self, audio_path: Path, *, filename: str, content_type: str) -> str:
        if self.client is None:
            raise TranscriptionFailed("Remote transcription is not configured (missing API key)")

        try:
            with audio_path.open("rb") as handle:
                result = self.client.audio.transcriptions.create(
                    model=self.model,
                    file=(filename, handle, content_type),
                )
        except openai.APITimeoutError as exc:
            raise TranscriptionFailed("Remote transcription timed out") from exc
        except openai.APIStatusError as exc:
            logger.error("remote transcription returned %s", exc.status_code)
            raise TranscriptionFailed(f"Remote transcription failed ({exc.status_code}): {exc.message}") from exc
        except openai.APIError as exc:
            raise TranscriptionFailed(f"Remote transcription failed: {exc}") from exc

        text = getattr(result, "text", None)
        if text is None and isinstance(result, dict):
            text = result.get("text")
        if not isinstance(text, str) or not text.strip():
            raise TranscriptionFailed("Remote transcription response did not include any text")
        return text.strip()


def build_transcriber(settings: ServiceSettings) -> Transcriber:
    """Pick the transcription backend named by ``settings.transcription_backend``."""

    if settings.transcription_backend == "remote":
        return RemoteTranscriber(
            api_key=settings.transcription_api_key,
            base_url=settings.transcription_base_url,
            model=settings.transcription_model,
            timeout=settings.transcription_timeout,
        )
    if settings.transcription_backend != "local":
        logger.warning("unknown transcription backend %r, using local whisper", settings.transcription_backend)
    return WhisperCliTranscriber(
        command=settings.whisper_command,
        model=settings.whisper_model,
        language=settings.whisper_language,
        timeout=settings.transcription_timeout,
    )
