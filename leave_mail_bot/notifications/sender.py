"""Deliver notification replies into the originating mail thread."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import structlog

from leave_mail_bot.errors import GraphApiError
from leave_mail_bot.models import EmailMessage, Employee, LeaveRequest

from .messages import (
    build_error_reply,
    build_failure_reply,
    build_manager_required_reply,
    build_missing_fields_reply,
    build_reply_recipients,
    build_success_reply,
)


class Notifier:
    """Send one reply per outcome; delivery failures are logged, never raised."""

    def __init__(self, *, mail, message: EmailMessage, requester: str, monitored_email: str, log=None) -> None:
        self._mail = mail
        self.message = message
        self.requester = requester
        self.monitored_email = monitored_email
        self._log = (log or structlog.get_logger()).bind(message_id=message.id, requester=requester)

    def _recipients(self) -> dict[str, Any]:
        return build_reply_recipients(self.message, self.requester, self.monitored_email)

    def _send(self, kind: str, payload: Mapping[str, Any]) -> bool:
        self._log.info("notification_sending", kind=kind)
        try:
            self._mail.reply(self.message.id, payload)
        except GraphApiError as exc:
            self._log.error(
                "notification_failed",
                kind=kind,
                error=str(exc),
                status_code=exc.status_code,
            )
            return False
        self._log.info("notification_sent", kind=kind)
        return True

    def send_success(self, employee: Employee, leave_request: LeaveRequest) -> bool:
        payload = build_success_reply(
            message=self.message,
            employee=employee,
            leave_request=leave_request,
            recipients=self._recipients(),
        )
        return self._send("success", payload)

    def send_failure(self, employee: Employee, leave_request: LeaveRequest, error: str) -> bool:
        payload = build_failure_reply(
            message=self.message,
            employee=employee,
            leave_request=leave_request,
            error=error,
            recipients=self._recipients(),
        )
        return self._send("failure", payload)

    def send_missing_fields(self, missing_fields: Iterable[str]) -> bool:
        payload = build_missing_fields_reply(
            message=self.message,
            missing_fields=list(missing_fields),
            recipients=self._recipients(),
        )
        return self._send("missing_fields", payload)

    def send_error(self, error: str) -> bool:
        payload = build_error_reply(message=self.message, error=error, recipients=self._recipients())
        return self._send("error", payload)

    def send_manager_required(self, employee: Employee) -> bool:
        payload = build_manager_required_reply(
            message=self.message,
            employee=employee,
            recipients=self._recipients(),
        )
        return self._send("manager_required", payload)
