"""Tests for notification templates and delivery."""

from __future__ import annotations

from datetime import date

from structlog.testing import capture_logs

from leave_mail_bot.models import LeaveRequest
from leave_mail_bot.notifications import (
    Notifier,
    build_missing_fields_reply,
    build_reply_recipients,
    build_success_reply,
)

from conftest import ALICE, MONITORED, FakeMail, make_message


def _addresses(recipients):
    return [entry["emailAddress"]["address"] for entry in recipients]


def _leave(**overrides):
    values = {
        "from_email": "alice@corp.example",
        "from_date": date(2024, 1, 10),
        "to_date": date(2024, 1, 12),
        "leave_type": "Sick Leave",
        "transaction": "availed",
    }
    values.update(overrides)
    return LeaveRequest(**values)


def test_reply_recipients_exclude_mailbox_and_requester():
    message = make_message(
        to=[MONITORED.upper(), "bob.boss@corp.example"],
        cc=["Alice@Corp.Example", "hr@corp.example", "bob.boss@corp.example"],
    )

    recipients = build_reply_recipients(message, "alice@corp.example", MONITORED)

    assert _addresses(recipients["toRecipients"]) == ["alice@corp.example"]
    assert _addresses(recipients["ccRecipients"]) == ["bob.boss@corp.example", "hr@corp.example"]


def test_success_reply_is_threaded_and_escaped():
    message = make_message(subject="Leave <urgent>")
    recipients = build_reply_recipients(message, "alice@corp.example", MONITORED)

    payload = build_success_reply(
        message=message,
        employee=ALICE,
        leave_request=_leave(reason="<b>flu</b>", from_session=2),
        recipients=recipients,
    )

    content = payload["message"]["body"]["content"]
    assert payload["message"]["subject"] == "RE: Leave <urgent>"
    assert payload["message"]["body"]["contentType"] == "HTML"
    assert "Alice Doe (EMP-7)" in content
    assert "2024-01-10 to 2024-01-12" in content
    assert "Second half" in content
    assert "&lt;b&gt;flu&lt;/b&gt;" in content


def test_missing_fields_reply_lists_exactly_the_given_fields():
    message = make_message()
    payload = build_missing_fields_reply(
        message=message,
        missing_fields=["Leave request 2: Leave Type"],
        recipients=build_reply_recipients(message, "alice@corp.example", MONITORED),
    )

    content = payload["message"]["body"]["content"]
    assert "<ul><li><strong>Leave request 2: Leave Type</strong></li></ul>" in content


def test_notifier_replies_to_original_message():
    message = make_message(message_id="orig", cc=["bob.boss@corp.example"])
    mail = FakeMail()

    sent = Notifier(mail=mail, message=message, requester="alice@corp.example", monitored_email=MONITORED).send_error(
        "Employee not found with email: alice@corp.example"
    )

    assert sent is True
    message_id, payload = mail.replies[0]
    assert message_id == "orig"
    assert _addresses(payload["message"]["ccRecipients"]) == ["bob.boss@corp.example"]
    assert "Employee not found" in payload["message"]["body"]["content"]


def test_forwarded_request_replies_to_envelope_sender_only():
    message = make_message(sender="assistant@corp.example", cc=["hr@corp.example"])
    mail = FakeMail()
    notifier = Notifier(mail=mail, message=message, requester="assistant@corp.example", monitored_email=MONITORED)

    notifier.send_success(ALICE, _leave())

    payload = mail.replies[0][1]["message"]
    assert _addresses(payload["toRecipients"]) == ["assistant@corp.example"]
    assert _addresses(payload["ccRecipients"]) == ["hr@corp.example"]


def test_send_failure_is_logged_not_raised():
    mail = FakeMail(fail_reply=True)

    with capture_logs() as logs:
        notifier = Notifier(mail=mail, message=make_message(), requester="alice@corp.example", monitored_email=MONITORED)
        sent = notifier.send_missing_fields(["Leave Type"])

    assert sent is False
    failures = [entry for entry in logs if entry.get("event") == "notification_failed"]
    assert failures
    assert failures[0]["kind"] == "missing_fields"
    assert failures[0]["status_code"] == 503
