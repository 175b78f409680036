"""Structured summary types and the tolerant parser for model output.

Models are asked for JSON but frequently answer in prose or wrap the JSON in
a markdown fence. ``parse_model_output`` decides once per response whether the
text is a usable structured summary (``ParsedSummary``) or not
(``RawSummary``); malformed output is never an error.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

_SUMMARY_KEYS = ("summary", "Summary")
_DECISION_KEYS = ("keyDecisions", "key_decisions", "decisions")
_ACTION_KEYS = ("actionItems", "action_items", "actions")


@dataclass
class ActionItem:
    task: str
    owner: Optional[str] = None
    deadline: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"task": self.task}
        if self.owner:
            data["owner"] = self.owner
        if self.deadline:
            data["deadline"] = self.deadline
        return data


@dataclass
class SummaryResult:
    summary: str
    key_decisions: List[str] = field(default_factory=list)
    action_items: List[ActionItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "keyDecisions": list(self.key_decisions),
            "actionItems": [item.to_dict() for item in self.action_items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SummaryResult":
        return cls(
            summary=str(data.get("summary") or ""),
            key_decisions=[str(item) for item in data.get("keyDecisions") or []],
            action_items=[
                ActionItem(task=str(item.get("task", "")), owner=item.get("owner"), deadline=item.get("deadline"))
                for item in data.get("actionItems") or []
                if isinstance(item, dict)
            ],
        )


@dataclass
class ParsedSummary:
    result: SummaryResult


@dataclass
class RawSummary:
    text: str

    @property
    def result(self) -> SummaryResult:
        return SummaryResult(summary=self.text)


ModelOutput = Union[ParsedSummary, RawSummary]


def _first(data: Dict[str, Any], keys) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_action_item(value: Any) -> Optional[ActionItem]:
    if isinstance(value, str):
        return ActionItem(task=value.strip()) if value.strip() else None
    if not isinstance(value, dict):
        return None
    task = _optional_text(value.get("task") or value.get("action") or value.get("description"))
    if task is None:
        return None
    return ActionItem(
        task=task,
        owner=_optional_text(value.get("owner") or value.get("assignee") or value.get("responsible")),
        deadline=_optional_text(value.get("deadline") or value.get("due") or value.get("due_date")),
    )


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _load_json(text: str) -> Any:
    candidates = [text]
    fenced = _FENCE.search(text)
    if fenced:
        candidates.insert(0, fenced.group(1))
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate.strip())
        except ValueError:
            continue
    return None


def parse_model_output(text: str) -> ModelOutput:
    """Classify generated text as a structured summary or plain prose."""

    data = _load_json(text)
    if not isinstance(data, dict):
        return RawSummary(text=text.strip())

    summary = _first(data, _SUMMARY_KEYS)
    decisions = _first(data, _DECISION_KEYS)
    actions = _first(data, _ACTION_KEYS)
    if summary is None and decisions is None and actions is None:
        return RawSummary(text=text.strip())

    return ParsedSummary(
        result=SummaryResult(
            summary=str(summary).strip() if summary is not None else "",
            key_decisions=[str(item).strip() for item in _as_list(decisions) if str(item).strip()],
            action_items=[item for item in map(_as_action_item, _as_list(actions)) if item is not None],
        )
    )


def _describe_action(item: ActionItem) -> str:
    details = []
    if item.owner:
        details.append(f"owner: {item.owner}")
    if item.deadline:
        details.append(f"due: {item.deadline}")
    return f"{item.task} ({', '.join(details)})" if details else item.task


def render_markdown(result: SummaryResult) -> str:
    """Return a Markdown representation of a summary."""

    lines = ["## Summary", result.summary]
    if result.key_decisions:
        lines.append("\n## Key Decisions")
        for decision in result.key_decisions:
            lines.append(f"- {decision}")
    if result.action_items:
        lines.append("\n## Action Items")
        for item in result.action_items:
            lines.append(f"- [ ] {_describe_action(item)}")
    return "\n".join(lines)


def render_text(result: SummaryResult) -> str:
    """Return a plain-text representation of a summary."""

    lines = ["Summary:", result.summary]
    if result.key_decisions:
        lines.append("\nKey decisions:")
        for decision in result.key_decisions:
            lines.append(f"- {decision}")
    if result.action_items:
        lines.append("\nAction items:")
        for item in result.action_items:
            lines.append(f"- {_describe_action(item)}")
    return "\n".join(lines)
