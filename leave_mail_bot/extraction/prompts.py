"""Prompt used to extract leave requests from an email."""

from __future__ import annotations

from leave_mail_bot.models import EmailContent

LEAVE_REQUEST_FIELDS = (
    "fromEmail",
    "fromDate",
    "toDate",
    "leaveType",
    "transaction",
    "reason",
    "fromSession",
    "toSession",
    "confidence",
)


def build_leave_request_prompt(content: EmailContent, default_leave_type: str) -> str:
    """Build the instruction asking the model for a JSON array of leave requests."""

    return f"""You are an AI assistant that extracts leave request information from emails.

An email may contain one or more leave requests. Analyze the following email and, for EACH leave request it contains, extract:
1. From email address of the person requesting the leave
2. Type of leave request (e.g., Sick Leave, Casual Leave, Privilege Leave, Comp off, etc.)
3. Leave dates (from date and to date)
4. Transaction type: either "availed" (applying for leave) or "cancelled" (cancelling a leave)
5. Reason for leave (if mentioned)
6. From Session (optional): session of the start date, 1 (first half) or 2 (second half)
7. To Session (optional): session of the end date, 1 (first half) or 2 (second half)

Email Details:
From: {content.sender}
Subject: {content.subject}
Body:
{content.body}

Forwarded or replied emails:
- If the subject starts with "Re:", "Fwd:" or "FW:", or the body contains an embedded header line such as "From: Name <address>", the email was forwarded or replied to.
- In that case use the email address of the ORIGINAL sender found in the embedded "From:" line as "fromEmail" for every leave request, not the address in the "From" field above.
- Otherwise use the address in the "From" field above.

Please respond ONLY with a valid JSON array, even when there is a single leave request, in the following format:
[
  {{
    "fromEmail": "email@example.com",
    "fromDate": "YYYY-MM-DD",
    "toDate": "YYYY-MM-DD",
    "leaveType": "type of leave",
    "transaction": "availed or cancelled",
    "reason": "reason for leave if mentioned",
    "fromSession": 1 or 2 or null,
    "toSession": 1 or 2 or null,
    "confidence": "high/medium/low"
  }}
]

Important:
- Use exactly these field names: {", ".join(LEAVE_REQUEST_FIELDS)}
- transaction should be "availed" for applying for leave, or "cancelled" for cancelling a leave
- If not specified, default transaction to "availed"
- If leave type is not specified, or mentioned as "personal leave" or "personal work", then default to "{default_leave_type}"
- Half-day leaves: "first half", "forenoon", "morning" or "till lunch" means session 1; "second half", "afternoon" or "after lunch" means session 2
- Decide fromSession from the wording about the start date and toSession from the wording about the end date, independently of each other
- If fromSession or toSession are not mentioned in the email, set them to null
- If you cannot determine any field with confidence, use null for that field. Never invent values."""
