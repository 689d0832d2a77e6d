"""Leave request extraction: normalisation, prompting, parsing and validation."""

from .client import LeaveExtractor, coerce_leave_request, extract_json_items, parse_leave_requests
from .normalizer import normalize_email_content
from .prompts import build_leave_request_prompt
from .validation import FIELD_LABELS, validate_batch, validate_leave_request

__all__ = [
    "LeaveExtractor",
    "coerce_leave_request",
    "extract_json_items",
    "parse_leave_requests",
    "normalize_email_content",
    "build_leave_request_prompt",
    "FIELD_LABELS",
    "validate_batch",
    "validate_leave_request",
]
