"""Presentation-layer session: the upload → transcribe → summarize → refine flow.

A ``MeetingSession`` owns everything a front end would otherwise keep as loose
UI state. Fields change only through the named transitions below, and every
transition that talks to the backend clears its loading flag on both the
success and the failure path. The server itself holds no session state.
"""
from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Iterator, List

from meeting_summarizer.client import MeetingSummarizerClient, ServiceError
from meeting_summarizer.errors import InvalidInput
from meeting_summarizer.summarization.model_output import SummaryResult
from meeting_summarizer.uploads import MEDIA, TRANSCRIPT, classify

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    AWAITING_MEDIA = "awaiting_media"
    TRANSCRIBING = "transcribing"
    AWAITING_TRANSCRIPT = "awaiting_transcript"
    SUMMARIZING = "summarizing"
    SHOWING_SUMMARY = "showing_summary"


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


class SessionBusy(RuntimeError):
    """A backend call for this session is still outstanding."""


class InvalidTransition(RuntimeError):
    """The requested step is not available in the current state."""


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass
class MediaSelection:
    filename: str
    content: bytes
    content_type: str


class MeetingSession:
    def __init__(self, client: MeetingSummarizerClient, session_id: str | None = None):
        self.client = client
        self.session_id = session_id or uuid.uuid4().hex
        self.state = WorkflowState.AWAITING_MEDIA
        self.chat_state = ChatState.IDLE
        self.media: MediaSelection | None = None
        self.transcript_file: str | None = None
        self.transcript: str | None = None
        self.summary: SummaryResult | None = None
        self.messages: List[ChatMessage] = []
        self.error: str | None = None
        self._in_flight = False
        self._lock = threading.Lock()

    # State queries ------------------------------------------------------
    @property
    def loading(self) -> bool:
        return self._in_flight

    @property
    def can_transcribe(self) -> bool:
        return self.media is not None and not self.loading and self.state == WorkflowState.AWAITING_MEDIA

    @property
    def can_summarize(self) -> bool:
        return bool(self.transcript) and not self.loading and self.state == WorkflowState.AWAITING_TRANSCRIPT

    @property
    def can_refine(self) -> bool:
        return bool(self.transcript) and not self.loading and self.state == WorkflowState.SHOWING_SUMMARY

    def view(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "chat_state": self.chat_state.value,
            "loading": self.loading,
            "media": self.media.filename if self.media else None,
            "transcript_file": self.transcript_file,
            "transcript": self.transcript,
            "summary": self.summary.to_dict() if self.summary else None,
            "messages": [asdict(message) for message in self.messages],
            "error": self.error,
        }

    # Transitions --------------------------------------------------------
    def select_media(self, filename: str, content: bytes, content_type: str) -> bool:
        """Pick an audio/video file to transcribe; rejects anything else."""

        self._ensure_idle()
        try:
            kind = classify(content_type, filename)
        except InvalidInput as exc:
            self.error = exc.message
            return False
        if kind != MEDIA:
            self.error = "Select an audio or video file to transcribe"
            return False

        self.media = MediaSelection(filename=filename, content=content, content_type=content_type)
        # Starting over from new media drops the previous transcript and its summary.
        self.transcript = None
        self.transcript_file = None
        self.summary = None
        self.messages = []
        self.state = WorkflowState.AWAITING_MEDIA
        self.error = None
        return True

    def transcribe(self) -> str | None:
        self._ensure_idle()
        if self.media is None or self.state != WorkflowState.AWAITING_MEDIA:
            raise InvalidTransition(f"cannot transcribe in state {self.state.value} without selected media")

        media = self.media
        with self._call():
            self.summary = None
            self.messages = []
            self.error = None
            self.state = WorkflowState.TRANSCRIBING
            try:
                payload = self.client.transcribe(media.filename, media.content, media.content_type)
            except ServiceError as exc:
                logger.warning("transcription failed for %s: %s", media.filename, exc)
                self.error = f"Transcription failed: {exc}"
                self.state = WorkflowState.AWAITING_MEDIA
                return None
            except Exception as exc:
                logger.exception("transcription request for %s crashed", media.filename)
                self.error = f"Transcription failed: {exc}"
                self.state = WorkflowState.AWAITING_MEDIA
                raise

        if not self._activate_transcript(payload.get("text", ""), source=media.filename):
            self.state = WorkflowState.AWAITING_MEDIA
            return None
        return self.transcript

    def upload_transcript(self, filename: str, content: bytes, content_type: str = "text/plain") -> str | None:
        """Side branch: send a transcript file through the upload relay."""

        self._ensure_idle()
        try:
            kind = classify(content_type, filename)
        except InvalidInput as exc:
            self.error = exc.message
            return None
        if kind != TRANSCRIPT:
            self.error = "Transcript uploads must be plain text"
            return None

        with self._call():
            try:
                payload = self.client.transcribe(filename, content, content_type)
            except ServiceError as exc:
                self.error = f"Transcript upload failed: {exc}"
                return None
            except Exception as exc:
                logger.exception("transcript upload for %s crashed", filename)
                self.error = f"Transcript upload failed: {exc}"
                raise

        if not self._activate_transcript(payload.get("text", ""), source=filename):
            return None
        return self.transcript

    def use_transcript(self, text: str, source: str | None = None) -> str | None:
        """Side branch: supply transcript text directly."""

        self._ensure_idle()
        if not self._activate_transcript(text, source=source):
            return None
        return self.transcript

    def summarize(self) -> SummaryResult | None:
        self._ensure_idle()
        if not self.can_summarize:
            raise InvalidTransition(f"cannot summarize in state {self.state.value}")

        with self._call():
            self.state = WorkflowState.SUMMARIZING
            self.messages = []
            self.error = None
            try:
                payload = self.client.summarize(self.transcript)
            except ServiceError as exc:
                logger.warning("summarization failed: %s", exc)
                self.error = f"Summarization failed: {exc}"
                self.messages = [ChatMessage(role="assistant", content=f"Error: {exc}")]
            except Exception as exc:
                logger.exception("summarization request crashed")
                self.error = f"Summarization failed: {exc}"
                self.messages = [ChatMessage(role="assistant", content=f"Error: {exc}")]
                raise
            else:
                self.summary = SummaryResult.from_dict(payload.get("content") or {})
                reply = payload.get("raw") or self.summary.summary
                self.messages = [ChatMessage(role="assistant", content=reply)]
            finally:
                self.state = WorkflowState.SHOWING_SUMMARY
                self.media = None
                self.transcript_file = None
        return self.summary

    def refine(self, instruction: str) -> ChatMessage | None:
        """Chat-refine: ask a follow-up about the active transcript."""

        self._ensure_idle()
        if not self.can_refine:
            raise InvalidTransition(f"cannot refine in state {self.state.value}")
        if not instruction or not instruction.strip():
            self.error = "Type a request before sending"
            return None

        with self._call():
            self.chat_state = ChatState.AWAITING_RESPONSE
            self.error = None
            self.messages.append(ChatMessage(role="user", content=instruction.strip()))
            try:
                payload = self.client.summarize(self.transcript, instruction=instruction.strip())
            except ServiceError as exc:
                self.error = f"Request failed: {exc}"
                reply = ChatMessage(role="assistant", content=f"Error: {exc}")
            except Exception as exc:
                logger.exception("refine request crashed")
                self.error = f"Request failed: {exc}"
                self.messages.append(ChatMessage(role="assistant", content=f"Error: {exc}"))
                raise
            else:
                content = payload.get("content") or {}
                reply = ChatMessage(role="assistant", content=payload.get("raw") or content.get("summary", ""))
                if payload.get("structured"):
                    self.summary = SummaryResult.from_dict(content)
            finally:
                self.chat_state = ChatState.IDLE
            self.messages.append(reply)
        return reply

    def reset(self) -> None:
        self._ensure_idle()
        self.state = WorkflowState.AWAITING_MEDIA
        self.chat_state = ChatState.IDLE
        self.media = None
        self.transcript_file = None
        self.transcript = None
        self.summary = None
        self.messages = []
        self.error = None

    # Internal helpers ---------------------------------------------------
    def _activate_transcript(self, text: str, source: str | None) -> bool:
        if not text or not text.strip():
            self.error = "The transcript is empty"
            return False
        # A new transcript invalidates everything derived from the old one.
        self.transcript = text
        self.transcript_file = source
        self.summary = None
        self.messages = []
        self.error = None
        self.state = WorkflowState.AWAITING_TRANSCRIPT
        return True

    def _ensure_idle(self) -> None:
        if self._in_flight:
            raise SessionBusy(f"session {self.session_id} has a request in progress")

    @contextmanager
    def _call(self) -> Iterator[None]:
        with self._lock:
            if self._in_flight:
                raise SessionBusy(f"session {self.session_id} has a request in progress")
            self._in_flight = True
        try:
            yield
        finally:
            with self._lock:
                self._in_flight = False
