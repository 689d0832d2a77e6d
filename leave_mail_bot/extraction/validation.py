"""Required-field checks for extracted leave requests."""

from __future__ import annotations

from typing import List, Sequence

from leave_mail_bot.models import BatchValidation, LeaveRequest, ValidationResult

FIELD_LABELS = {
    "from_date": "From Date",
    "to_date": "To Date",
    "leave_type": "Leave Type",
    "transaction": "Transaction Type (availed/cancelled)",
}


def missing_required_fields(request: LeaveRequest) -> List[str]:
    return [name for name in FIELD_LABELS if getattr(request, name) is None]


def validate_leave_request(request: LeaveRequest) -> ValidationResult:
    missing = [FIELD_LABELS[name] for name in missing_required_fields(request)]
    return ValidationResult(
        is_valid=not missing,
        missing_fields=missing,
        confidence=request.confidence,
    )


def validate_batch(requests: Sequence[LeaveRequest]) -> BatchValidation:
    """Validate every request; the batch is valid only if all of them are.

    Labels are prefixed with ``"Leave request k: "`` when the batch holds
    more than one request. An empty batch reports every required field.
    """

    if not requests:
        return BatchValidation(is_valid=False, missing_fields=list(FIELD_LABELS.values()))

    missing: List[str] = []
    for index, request in enumerate(requests, start=1):
        result = validate_leave_request(request)
        if len(requests) > 1:
            missing.extend(f"Leave request {index}: {label}" for label in result.missing_fields)
        else:
            missing.extend(result.missing_fields)

    return BatchValidation(is_valid=not missing, missing_fields=missing)
