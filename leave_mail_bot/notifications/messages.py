"""Reply payload builders for leave request notifications."""

from __future__ import annotations

from html import escape
from typing import Any, Dict, Iterable, List

from leave_mail_bot.models import EmailMessage, Employee, LeaveRequest

SIGNATURE = "<p>Best regards,<br/>Leave Management AI</p>"
_MISSING_VALUE = "<em>Not provided</em>"

_CORRECTION_HINT = (
    "<p>Please check if you have any leaves of this type left, or whether you have already taken "
    "a leave on these dates. Also please note that sick leaves cannot be taken for the future.</p>"
    "<p><strong><u>Once you have corrected the error, please send a new email.</u></strong></p>"
    "<p>If all else fails please contact HR or IT support for assistance, or manually submit your "
    "leave request.</p>"
)

_REQUIRED_FIELDS_HELP = """<p><strong>Required fields for a leave request:</strong></p>
<ul>
<li><strong>From Date</strong> - Start date of your leave</li>
<li><strong>To Date</strong> - End date of your leave</li>
<li><strong>Leave Type</strong> - Type of leave (e.g., Sick Leave, Privilege Leave)</li>
<li><strong>Transaction Type</strong> - Either "availed" (applying for leave) or "cancelled" (cancelling leave)</li>
<li><strong>[OPTIONAL] From Session</strong> - 1 or 2 (first half or second half of the start date)</li>
<li><strong>[OPTIONAL] To Session</strong> - 1 or 2 (first half or second half of the end date)</li>
</ul>"""


def _recipient(address: str) -> Dict[str, Any]:
    return {"emailAddress": {"address": address}}


def build_reply_recipients(
    message: EmailMessage,
    requester: str,
    monitored_email: str,
) -> Dict[str, List[Dict[str, Any]]]:
    """Return ``toRecipients``/``ccRecipients`` for a reply to *message*.

    ``To`` is the requester. ``CC`` keeps everyone on the original ``to`` and
    ``cc`` lines except the monitored mailbox and the requester.
    """

    excluded = {monitored_email.lower(), requester.lower()}
    cc: List[Dict[str, Any]] = []
    for address in message.recipient_addresses():
        key = (address or "").lower()
        if not key or key in excluded:
            continue
        excluded.add(key)
        cc.append(_recipient(address))

    return {"toRecipients": [_recipient(requester)], "ccRecipients": cc}


def _format_field(label: str, value: Any) -> str:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return f"<p><strong>{label}:</strong> {_MISSING_VALUE}</p>"
    return f"<p><strong>{label}:</strong> {escape(str(value))}</p>"


def _session_label(session: int | None) -> str | None:
    if session is None:
        return None
    return "First half" if session == 1 else "Second half"


def _reply(message: EmailMessage, content: str, recipients: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "message": {
            "subject": f"RE: {message.subject}",
            "body": {"contentType": "HTML", "content": content},
            **recipients,
        }
    }


def build_success_reply(
    *,
    message: EmailMessage,
    employee: Employee,
    leave_request: LeaveRequest,
    recipients: Dict[str, Any],
) -> Dict[str, Any]:
    lines = [
        f"<p>Hello {escape(employee.name)},</p>",
        "<p><strong>Your leave application has been submitted successfully!</strong></p>",
        _format_field("Employee", f"{employee.name} ({employee.employee_no})"),
        _format_field("Leave Type", leave_request.leave_type),
        _format_field("Transaction", leave_request.transaction),
        _format_field("Duration", f"{leave_request.from_date} to {leave_request.to_date}"),
    ]
    if leave_request.from_session is not None:
        lines.append(_format_field("From Session", _session_label(leave_request.from_session)))
    if leave_request.to_session is not None:
        lines.append(_format_field("To Session", _session_label(leave_request.to_session)))
    lines.extend(
        [
            _format_field("Reason", leave_request.reason),
            "<p>This is an automated confirmation. Please do not reply to this email.</p>",
            SIGNATURE,
        ]
    )
    return _reply(message, "\n".join(lines), recipients)


def build_failure_reply(
    *,
    message: EmailMessage,
    employee: Employee,
    leave_request: LeaveRequest,
    error: str,
    recipients: Dict[str, Any],
) -> Dict[str, Any]:
    lines = [
        f"<p>Hello {escape(employee.name)},</p>",
        "<p><strong>Failed to submit your leave application.</strong></p>",
        _format_field("Leave Type", leave_request.leave_type),
        _format_field("Duration", f"{leave_request.from_date} to {leave_request.to_date}"),
        _format_field("Error", error or "Unknown error"),
        _CORRECTION_HINT,
        SIGNATURE,
    ]
    return _reply(message, "\n".join(lines), recipients)


def build_missing_fields_reply(
    *,
    message: EmailMessage,
    missing_fields: Iterable[str],
    recipients: Dict[str, Any],
) -> Dict[str, Any]:
    items = "".join(f"<li><strong>{escape(field)}</strong></li>" for field in missing_fields)
    lines = [
        "<p>Hello,</p>",
        "<p><strong>Your leave request is incomplete.</strong></p>",
        "<p>The following required fields are missing:</p>",
        f"<ul>{items}</ul>",
        "<p>The required fields are inferred from your email, and the inference can be wrong. "
        "If you are sure that all information is provided, please send the required information "
        "explicitly to make it clearer.</p>",
        _REQUIRED_FIELDS_HELP,
        "<p>Please send a new email with all the required information.</p>",
        "<p>If you are requesting multiple leaves simultaneously, please provide all required "
        "information individually for each leave request.</p>",
        "<p>This is an automated notification. Please do not reply to this email.</p>",
        SIGNATURE,
    ]
    return _reply(message, "\n".join(lines), recipients)


def build_error_reply(
    *,
    message: EmailMessage,
    error: str,
    recipients: Dict[str, Any],
) -> Dict[str, Any]:
    lines = [
        "<p>Hello,</p>",
        "<p><strong>An error occurred while processing your leave request.</strong></p>",
        _format_field("Error", error),
        _CORRECTION_HINT,
        SIGNATURE,
    ]
    return _reply(message, "\n".join(lines), recipients)


def build_manager_required_reply(
    *,
    message: EmailMessage,
    employee: Employee,
    recipients: Dict[str, Any],
) -> Dict[str, Any]:
    lines = [
        f"<p>Hello {escape(employee.name)},</p>",
        "<p><strong>Your leave request was not submitted.</strong></p>",
        "<p>Leave requests must be sent with your reporting manager in the To or CC line, "
        "and your manager was not found among the recipients of your email.</p>",
        "<p><strong><u>Please send a new email that includes your manager.</u></strong></p>",
        SIGNATURE,
    ]
    return _reply(message, "\n".join(lines), recipients)
