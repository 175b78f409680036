"""LLM-based summarization service.

Supports an OpenAI-compatible chat completions API (OpenRouter by default) and
the Hugging Face inference API. Falls back to a deterministic first-sentences
extract when no API key is configured, so the service stays usable offline.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx
import openai
from openai import OpenAI

from meeting_summarizer.config import ServiceSettings
from meeting_summarizer.errors import InvalidInput, SummarizationFailed
from meeting_summarizer.summarization.model_output import (
    ModelOutput,
    ParsedSummary,
    SummaryResult,
    parse_model_output,
)

logger = logging.getLogger(__name__)

LOCAL_SENTENCE_LIMIT = 3
NO_SUMMARY = "No summary generated"
_SENTENCE_END = re.compile(r"[.!?]")

SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes meeting transcripts. "
    "Answer with a single JSON object and nothing else."
)

RESPONSE_FORMAT = """Return JSON with exactly these fields:
{
  "summary": "a short paragraph describing the meeting",
  "keyDecisions": ["decision", ...],
  "actionItems": [{"task": "what needs doing", "owner": "who, if mentioned", "deadline": "when, if mentioned"}, ...]
}
Use empty lists when there are no decisions or action items. Omit owner or deadline when unknown."""


def first_sentences(text: str, limit: int = LOCAL_SENTENCE_LIMIT) -> str:
    """Join the first ``limit`` sentences of ``text`` with ``". "`` and a closing period."""

    sentences = [part.strip() for part in _SENTENCE_END.split(text)]
    sentences = [sentence for sentence in sentences if sentence][:limit]
    return ". ".join(sentences) + ("." if sentences else "")


@dataclass
class SummaryOutcome:
    output: ModelOutput
    raw: str
    provider: str

    @property
    def result(self) -> SummaryResult:
        return self.output.result

    @property
    def structured(self) -> bool:
        return isinstance(self.output, ParsedSummary)


class Summarizer:
    """Summarization adapter.

    Supports:
    - ``openrouter``: any OpenAI-compatible chat completions endpoint
    - ``huggingface``: Hugging Face hosted inference
    - local first-sentences extract when ``api_key`` is absent
    """

    def __init__(
        self,
        provider: str = "openrouter",
        api_key: str | None = None,
        *,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "openai/gpt-4o-mini",
        hf_model_url: str = "https://api-inference.huggingface.co/models/facebook/bart-large-cnn",
        timeout: float = 60.0,
        openai_client: Optional[Any] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.hf_model_url = hf_model_url
        self.timeout = timeout
        self.openai_client = openai_client
        self.http_client = http_client

        if not api_key:
            logger.info("no summarization API key configured, using local extraction")
        elif provider == "openrouter" and self.openai_client is None:
            self.openai_client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
            logger.info("chat completions client initialized for %s", base_url)

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> "Summarizer":
        return cls(
            provider=settings.summarizer_provider,
            api_key=settings.summarizer_api_key,
            base_url=settings.summarizer_base_url,
            model=settings.summarizer_model,
            hf_model_url=settings.hf_model_url,
            timeout=settings.request_timeout,
        )

    @property
    def offline(self) -> bool:
        return not self.api_key

    def summarize(self, transcript: str | None, instruction: str | None = None) -> SummaryOutcome:
        """
        Summarize a transcript, optionally following a free-form instruction.

        Args:
            transcript: Full transcript text
            instruction: Follow-up request for the chat-refine path

        Returns:
            SummaryOutcome with the tagged parse and the raw generated text

        Raises:
            InvalidInput: transcript is missing or blank
            SummarizationFailed: the remote API call failed
        """
        if not transcript or not transcript.strip():
            raise InvalidInput("Missing text")

        if self.offline:
            summary = first_sentences(transcript)
            return SummaryOutcome(output=ParsedSummary(SummaryResult(summary=summary)), raw=summary, provider="local")

        if self.provider == "huggingface":
            generated = self._generate_huggingface(self.build_inputs(transcript, instruction))
        else:
            generated = self._generate_chat(self.build_prompt(transcript, instruction))
        generated = generated or NO_SUMMARY

        output = parse_model_output(generated)
        if not isinstance(output, ParsedSummary):
            logger.info("model output was not structured JSON, using it as the summary text")
        return SummaryOutcome(output=output, raw=generated, provider=self.provider)

    def build_prompt(self, transcript: str, instruction: str | None = None) -> str:
        if instruction and instruction.strip():
            return (
                f"{instruction.strip()}\n\n"
                "Work from the meeting transcript below. When your answer is a summary, "
                f"format it as follows.\n{RESPONSE_FORMAT}\n\n"
                f"Transcript:\n{transcript}"
            )
        return f"Summarize the following meeting transcript.\n{RESPONSE_FORMAT}\n\nTranscript:\n{transcript}"

    def build_inputs(self, transcript: str, instruction: str | None = None) -> str:
        # Hosted summarization models such as bart-large-cnn take raw text and cannot follow a JSON format.
        if instruction and instruction.strip():
            return f"{instruction.strip()}\n\n{transcript}"
        return transcript

    def _generate_chat(self, prompt: str) -> str:
        """Call an OpenAI-compatible chat completions endpoint."""
        try:
            response = self.openai_client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
                max_tokens=1000,
            )
        except openai.APITimeoutError as exc:
            raise SummarizationFailed("Summarization request timed out") from exc
        except openai.APIStatusError as exc:
            logger.error("chat completions returned %s", exc.status_code)
            raise SummarizationFailed(f"Summarization API error ({exc.status_code}): {exc.message}") from exc
        except openai.APIError as exc:
            raise SummarizationFailed(f"Summarization API error: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        return (content or "").strip()

    def _generate_huggingface(self, inputs: str) -> str:
        """Call the Hugging Face inference API."""
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self.http_client is not None:
                response = self.http_client.post(self.hf_model_url, headers=headers, json={"inputs": inputs})
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.hf_model_url, headers=headers, json={"inputs": inputs})
        except httpx.TimeoutException as exc:
            raise SummarizationFailed("Summarization request timed out") from exc
        except httpx.HTTPError as exc:
            raise SummarizationFailed(f"Summarization API error: {exc}") from exc

        if response.is_error:
            logger.error("hugging face inference returned %s", response.status_code)
            raise SummarizationFailed(f"Hugging Face API error ({response.status_code}): {response.text}")

        try:
            data = response.json()
        except ValueError:
            return response.text.strip()
        return _generated_text(data)


def _generated_text(data: Any) -> str:
    items: List[Any] = data if isinstance(data, list) else [data]
    for item in items:
        if isinstance(item, dict):
            text = item.get("generated_text") or item.get("summary_text")
            if text:
                return str(text).strip()
    return NO_SUMMARY
