"""FastAPI wiring for the meeting summarizer.

The server is stateless: every request carries what it needs (an upload or a
transcript) and nothing outlives the request. Transcription and summarization
backends are chosen from ``ServiceSettings`` at import time.
"""
from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from meeting_summarizer.config import ServiceSettings
from meeting_summarizer.errors import InvalidInput, MeetingSummarizerError
from meeting_summarizer.ops.metrics import MetricsRegistry
from meeting_summarizer.stt.whisper_service import build_transcriber
from meeting_summarizer.summarization.summarizer import Summarizer
from meeting_summarizer.uploads import TRANSCRIPT, read_transcript, scoped_upload

settings = ServiceSettings.from_env()
logger = logging.getLogger("meeting_summarizer.api")

app = FastAPI(title="Meeting Summarizer")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", settings.request_id_header],
    expose_headers=[settings.request_id_header],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    return response


@app.exception_handler(MeetingSummarizerError)
async def handle_service_error(request: Request, exc: MeetingSummarizerError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log("%s failed: %s", request.url.path, exc.message, extra={"status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error", "detail": str(exc)})


transcriber = build_transcriber(settings)
summarizer = Summarizer.from_settings(settings)
metrics = MetricsRegistry()

logger.info(
    "meeting summarizer configured",
    extra={"transcription": transcriber.name, "summarizer": "local" if summarizer.offline else summarizer.provider},
)


class SummarizeRequest(BaseModel):
    text: str | None = None
    instruction: str | None = None


@app.get("/health")
def healthcheck():
    return {"ok": True}


@app.post("/api/transcribe")
def transcribe(file: UploadFile | None = File(None)):
    if file is None or not file.filename:
        raise InvalidInput("No transcript file provided")

    ok = False
    try:
        with scoped_upload(
            file.file,
            filename=file.filename,
            content_type=file.content_type,
            directory=settings.upload_dir,
            max_bytes=settings.max_upload_bytes,
        ) as upload:
            if upload.kind == TRANSCRIPT:
                text = read_transcript(upload)
            else:
                text = transcriber.transcribe(upload.path, filename=upload.filename, content_type=upload.content_type)
        ok = True
    finally:
        metrics.outcome("transcribe", ok)
    return {"text": text}


@app.post("/api/summarize")
def summarize(request: SummarizeRequest):
    ok = False
    try:
        outcome = summarizer.summarize(request.text, instruction=request.instruction)
        ok = True
    finally:
        metrics.outcome("summarize", ok)
    return {"content": outcome.result.to_dict(), "raw": outcome.raw, "structured": outcome.structured}


@app.get("/metrics")
def metric_snapshot():
    """Expose collected counters for lightweight observability."""

    return {"counters": metrics.snapshot()}
