"""Error taxonomy shared by the adapters and the HTTP boundary."""
from __future__ import annotations


class MeetingSummarizerError(RuntimeError):
    """Base class; ``status_code`` is what the API reports for it."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(MeetingSummarizerError):
    """Missing or unacceptable input; the caller can fix it."""

    status_code = 400


class TranscriptionFailed(MeetingSummarizerError):
    """The speech-to-text tool or remote transcription call failed."""

    status_code = 502


class SummarizationFailed(MeetingSummarizerError):
    """The remote text-generation call failed at the HTTP level."""

    status_code = 502
