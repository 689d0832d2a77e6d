"""Shared fixtures and fake collaborators for the leave mail bot tests."""

from __future__ import annotations

from pathlib import Path
import sys
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover - import-time guard
    sys.path.insert(0, str(ROOT))

from leave_mail_bot.config import load_settings  # noqa: E402
from leave_mail_bot.errors import EmployeeNotFoundError, GraphApiError, HRBackendError  # noqa: E402
from leave_mail_bot.models import EmailMessage, Employee, OrgTreeNode  # noqa: E402

MONITORED = "leaves@corp.example"

BASE_ENV = {
    "BOT_APP_ID": "app-id",
    "BOT_APP_SECRET": "app-secret",
    "TENANT_ID": "tenant",
    "OPENAI_API_KEY": "sk-test",
    "PUBLIC_URL": "https://bot.corp.example",
    "MONITORED_EMAIL": MONITORED,
    "GREYTHR_AUTH_URL": "https://corp.greythr.com",
    "GREYTHR_DOMAIN": "corp.greythr.com",
    "GREYTHR_USERNAME": "api-user",
    "GREYTHR_PASSWORD": "api-pass",
}


def make_settings(**overrides: str):
    env = dict(BASE_ENV)
    env.update(overrides)
    return load_settings(env)


@pytest.fixture
def settings(tmp_path):
    return make_settings(LOGS_DIR=str(tmp_path / "logs"))


def make_message(
    *,
    message_id: str = "msg-1",
    sender: str = "alice@corp.example",
    to: Iterable[str] = (MONITORED,),
    cc: Iterable[str] = (),
    subject: str = "Leave request",
    body: str = "",
    preview: str = "",
    received: str = "2024-01-09T08:30:00Z",
    conversation_id: str | None = None,
) -> EmailMessage:
    return EmailMessage.model_validate(
        {
            "id": message_id,
            "subject": subject,
            "from": {"emailAddress": {"address": sender}},
            "toRecipients": [{"emailAddress": {"address": address}} for address in to],
            "ccRecipients": [{"emailAddress": {"address": address}} for address in cc],
            "body": {"contentType": "html", "content": body},
            "bodyPreview": preview,
            "receivedDateTime": received,
            "conversationId": conversation_id,
        }
    )


class FakeMail:
    def __init__(self, messages: Iterable[EmailMessage] = (), threads: Dict[str, List[EmailMessage]] | None = None,
                 fail_reply: bool = False) -> None:
        self.messages = {message.id: message for message in messages}
        self.threads = threads or {}
        self.fail_reply = fail_reply
        self.calls: List[tuple] = []
        self.replies: List[tuple] = []

    def get_message(self, message_id: str) -> EmailMessage:
        self.calls.append(("get_message", message_id))
        if message_id not in self.messages:
            raise GraphApiError("The specified object was not found in the store.", status_code=404)
        return self.messages[message_id]

    def list_conversation(self, conversation_id: str) -> List[EmailMessage]:
        self.calls.append(("list_conversation", conversation_id))
        return list(self.threads.get(conversation_id, []))

    def reply(self, message_id: str, payload: Dict[str, Any]) -> None:
        self.calls.append(("reply", message_id))
        if self.fail_reply:
            raise GraphApiError("Service unavailable", status_code=503)
        self.replies.append((message_id, payload))


class FakeHR:
    def __init__(
        self,
        employees: Iterable[Employee] = (),
        org_trees: Dict[str, List[OrgTreeNode]] | None = None,
        failing_dates: Dict[str, str] | None = None,
    ) -> None:
        self.by_email = {employee.email.lower(): employee for employee in employees}
        self.by_id = {employee.employee_id: employee for employee in employees}
        self.org_trees = org_trees or {}
        self.failing_dates = failing_dates or {}
        self.calls: List[tuple] = []
        self.applications: List[Dict[str, Any]] = []

    def get_employee_by_email(self, email: str) -> Employee:
        self.calls.append(("get_employee_by_email", email))
        if email.lower() not in self.by_email:
            raise EmployeeNotFoundError(f"Employee not found with email: {email}")
        return self.by_email[email.lower()]

    def get_employee_by_id(self, employee_id: str) -> Employee:
        self.calls.append(("get_employee_by_id", employee_id))
        if employee_id not in self.by_id:
            raise EmployeeNotFoundError(f"Employee not found with id: {employee_id}")
        return self.by_id[employee_id]

    def get_org_tree(self, employee_id: str) -> List[OrgTreeNode]:
        self.calls.append(("get_org_tree", employee_id))
        return list(self.org_trees.get(employee_id, []))

    def apply_leave(self, application: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("apply_leave", application["fromDate"]))
        error = self.failing_dates.get(application["fromDate"])
        if error:
            raise HRBackendError(error, status_code=400)
        self.applications.append(dict(application))
        return {"transactionId": len(self.applications)}


class DummyResponses:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.output_text = output_text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_text=self.output_text)


class DummyOpenAI:
    def __init__(self, output_text: str = "", error: Exception | None = None) -> None:
        self.responses = DummyResponses(output_text, error)


ALICE = Employee(employee_id="101", employee_no="EMP-7", name="Alice Doe", email="alice@corp.example")
BOB = Employee(employee_id="202", employee_no="EMP-2", name="Bob Boss", email="bob.boss@corp.example")
