"""OpenAI-backed extraction of leave requests from email text."""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Mapping

import structlog
from openai import OpenAI, OpenAIError

from leave_mail_bot.errors import ExtractionBackendError, ResponseFormatError
from leave_mail_bot.models import CONFIDENCE_LEVELS, TRANSACTIONS, EmailContent, LeaveRequest

from .prompts import build_leave_request_prompt

_DECODER = json.JSONDecoder()


def _first_json(text: str, opener: str, kind: type) -> Any:
    """Return the first value of type *kind* that decodes at an *opener* position."""

    index = text.find(opener)
    while index != -1:
        try:
            value, _ = _DECODER.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kind):
            return value
        index = text.find(opener, index + 1)
    return None


def extract_json_items(text: str) -> List[Any]:
    """Return the JSON array embedded in *text*, tolerating surrounding prose."""

    text = text or ""
    parsed = _first_json(text, "[", list)
    if parsed is not None:
        return parsed

    parsed = _first_json(text, "{", dict)
    if parsed is not None:
        return [parsed]

    raise ResponseFormatError(text)


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def _date_or_none(value: Any) -> date | None:
    text = _text_or_none(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _session_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        session = int(value)
    except (TypeError, ValueError):
        return None
    return session if session in (1, 2) else None


def _transaction(value: Any) -> str | None:
    text = _text_or_none(value)
    if text is None:
        return "availed"
    text = text.lower()
    return text if text in TRANSACTIONS else None


def _confidence(value: Any) -> str:
    text = (_text_or_none(value) or "").lower()
    return text if text in CONFIDENCE_LEVELS else "low"


def coerce_leave_request(item: Mapping[str, Any], fallback_email: str) -> LeaveRequest:
    """Map one raw model object onto a ``LeaveRequest`` with explicit defaults."""

    if not isinstance(item, Mapping):
        raise ResponseFormatError(json.dumps(item))

    return LeaveRequest(
        from_email=_text_or_none(item.get("fromEmail")) or fallback_email,
        from_date=_date_or_none(item.get("fromDate")),
        # Older prompts answered with "endDate".
        to_date=_date_or_none(item.get("toDate")) or _date_or_none(item.get("endDate")),
        leave_type=_text_or_none(item.get("leaveType")),
        transaction=_transaction(item.get("transaction")),
        reason=_text_or_none(item.get("reason")),
        confidence=_confidence(item.get("confidence")),
        from_session=_session_or_none(item.get("fromSession")),
        to_session=_session_or_none(item.get("toSession")),
    )


def parse_leave_requests(text: str, fallback_email: str) -> List[LeaveRequest]:
    return [coerce_leave_request(item, fallback_email) for item in extract_json_items(text)]


class LeaveExtractor:
    """Ask a text-generation model for the leave requests in an email."""

    def __init__(self, *, api_key: str | None = None, model: str, client: Any | None = None) -> None:
        if client is None and api_key is None:
            raise ValueError("Either an instantiated client or an API key must be provided.")

        self._client = client or OpenAI(api_key=api_key)
        self.model = model

    def complete(self, prompt: str) -> str:
        try:
            response = self._client.responses.create(model=self.model, input=prompt)
        except OpenAIError as exc:
            message = getattr(exc, "message", None) or str(exc)
            raise ExtractionBackendError(f"OpenAI API Error: {message}") from exc
        return response.output_text or ""

    def extract(self, content: EmailContent, *, default_leave_type: str, log=None) -> List[LeaveRequest]:
        log = log or structlog.get_logger()
        log.info("leave_extraction_started", sender=content.sender, model=self.model)

        prompt = build_leave_request_prompt(content, default_leave_type)
        output = self.complete(prompt)
        log.info("leave_extraction_response", output=output)

        try:
            requests = parse_leave_requests(output, content.sender)
        except ResponseFormatError:
            log.error("leave_extraction_unparseable", output=output)
            raise

        log.info(
            "leave_requests_extracted",
            count=len(requests),
            requests=[_summary(request) for request in requests],
        )
        return requests


def _summary(request: LeaveRequest) -> Dict[str, Any]:
    return request.model_dump(mode="json", by_alias=True)
