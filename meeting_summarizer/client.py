"""Lightweight HTTP client for the meeting summarizer API.

The client defaults to the standard library for HTTP requests, while allowing
a drop-in HTTP client (such as FastAPI's ``TestClient``) to be supplied for
in-process testing. The presentation layer (``sessions.MeetingSession``)
talks to the backend exclusively through this class.
"""
from __future__ import annotations

import http.client
import json
import socket
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Tuple

# (filename, content, content_type), the shape httpx and TestClient accept.
FileField = Tuple[str, bytes, str]


class ServiceError(RuntimeError):
    """Raised when the service returns a non-success response or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class _Response:
    status_code: int
    text: str

    def json(self) -> Any:
        if not self.text:
            return {}
        return json.loads(self.text)


def _encode_multipart(files: Dict[str, FileField]) -> Tuple[bytes, str]:
    boundary = uuid.uuid4().hex
    parts = []
    for field_name, (filename, content, content_type) in files.items():
        header = (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        )
        parts.append(header.encode("utf-8") + content + b"\r\n")
    parts.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(parts), f"multipart/form-data; boundary={boundary}"


class _UrllibClient:
    """Simple HTTP client backed by urllib to avoid third-party deps."""

    def __init__(self, timeout: float | None = 120.0):
        self.timeout = timeout

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str] | None = None,
        json: Any = None,
        files: Dict[str, FileField] | None = None,
    ) -> _Response:
        headers = dict(headers or {})
        data = None
        if files:
            data, headers["content-type"] = _encode_multipart(files)
        elif json is not None:
            headers["content-type"] = "application/json"
            data = _dumps(json)

        req = urllib.request.Request(url, data=data, headers=headers, method=method.upper())
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
                return _Response(status_code=resp.getcode(), text=body)
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8")
            return _Response(status_code=exc.code, text=body)
        except (socket.timeout, TimeoutError) as exc:
            raise ServiceError(f"request to {url} timed out after {self.timeout:g}s") from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                raise ServiceError(f"request to {url} timed out after {self.timeout:g}s") from exc
            raise ServiceError(f"could not reach {url}: {exc.reason}") from exc
        except (http.client.HTTPException, OSError) as exc:
            # Connection drops while waiting for the response are not wrapped by urllib.
            raise ServiceError(f"connection to {url} failed: {exc!r}") from exc


def _dumps(payload: Any) -> bytes:
    return json.dumps(payload).encode("utf-8")


class MeetingSummarizerClient:
    """Convenience wrapper over the REST API.

    Usage:
        client = MeetingSummarizerClient("http://localhost:5000")
        text = client.transcribe("standup.mp4", video_bytes, "video/mp4")["text"]
        content = client.summarize(text)["content"]
    """

    def __init__(self, base_url: str, http_client: Any | None = None, timeout: float | None = 120.0):
        self.base_url = base_url.rstrip("/")
        self.http = http_client or _UrllibClient(timeout=timeout)

    # Public API helpers -------------------------------------------------
    def health(self) -> Dict[str, Any]:
        return _json(self._request("GET", "/health"))

    def transcribe(self, filename: str, content: bytes, content_type: str) -> Dict[str, Any]:
        response = self._request("POST", "/api/transcribe", files={"file": (filename, content, content_type)})
        return _json(response)

    def summarize(self, text: str, instruction: str | None = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"text": text}
        if instruction:
            payload["instruction"] = instruction
        return _json(self._request("POST", "/api/summarize", json_body=payload))

    def metrics(self) -> Dict[str, Any]:
        return _json(self._request("GET", "/metrics"))

    # Internal helpers ---------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any | None = None,
        files: Dict[str, FileField] | None = None,
    ) -> _Response:
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {"headers": {"accept": "application/json"}}
        if json_body is not None:
            kwargs["json"] = json_body
        if files is not None:
            kwargs["files"] = files
        try:
            response = self.http.request(method, url, **kwargs)
        except (http.client.HTTPException, OSError) as exc:
            raise ServiceError(f"connection to {url} failed: {exc!r}") from exc

        status = getattr(response, "status_code", 0)
        raw_text = getattr(response, "text", None)
        if raw_text is None:
            content = getattr(response, "content", b"")
            raw_text = content.decode("utf-8") if isinstance(content, bytes) else str(content)

        normalized = _Response(status_code=status, text=raw_text)
        if normalized.status_code >= 400:
            raise ServiceError(_error_message(normalized), status_code=normalized.status_code)
        return normalized


def _json(response: _Response) -> Dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise ServiceError(f"invalid JSON in response: {response.text[:200]}", status_code=response.status_code) from exc


def _error_message(response: _Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"request failed ({response.status_code}): {response.text}"
