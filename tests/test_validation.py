"""Tests for required-field validation of extracted leave requests."""

from datetime import date

import pytest

from leave_mail_bot.extraction.validation import validate_batch, validate_leave_request
from leave_mail_bot.models import LeaveRequest


def _request(**overrides):
    values = {
        "from_email": "alice@corp.example",
        "from_date": date(2024, 1, 10),
        "to_date": date(2024, 1, 12),
        "leave_type": "Sick Leave",
        "transaction": "availed",
    }
    values.update(overrides)
    return LeaveRequest(**values)


def test_complete_request_is_valid():
    result = validate_leave_request(_request(confidence="high"))

    assert result.is_valid is True
    assert result.missing_fields == []
    assert result.confidence == "high"


def test_missing_fields_use_human_labels():
    result = validate_leave_request(_request(from_date=None, to_date=None, leave_type=None, transaction=None))

    assert result.is_valid is False
    assert result.missing_fields == [
        "From Date",
        "To Date",
        "Leave Type",
        "Transaction Type (availed/cancelled)",
    ]


def test_single_request_batch_is_not_prefixed():
    batch = validate_batch([_request(leave_type=None)])

    assert batch.is_valid is False
    assert batch.missing_fields == ["Leave Type"]


def test_multi_request_batch_prefixes_each_item():
    batch = validate_batch([_request(), _request(leave_type=None)])

    assert batch.is_valid is False
    assert batch.missing_fields == ["Leave request 2: Leave Type"]


@pytest.mark.parametrize(
    "flags",
    [
        (True, True, True),
        (True, False, True),
        (False, False, False),
        (False, True, True),
    ],
)
def test_batch_is_invalid_iff_any_item_is_invalid(flags):
    requests = [_request() if complete else _request(to_date=None) for complete in flags]

    batch = validate_batch(requests)

    assert batch.is_valid is all(flags)
    assert len(batch.missing_fields) == flags.count(False)


def test_empty_batch_reports_every_required_field():
    batch = validate_batch([])

    assert batch.is_valid is False
    assert len(batch.missing_fields) == 4
