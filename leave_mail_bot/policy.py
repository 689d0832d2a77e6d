"""Business-rule checks applied before anything is submitted to greytHR."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog

from leave_mail_bot.errors import EmployeeNotFoundError
from leave_mail_bot.models import EmailMessage, Employee, OrgTreeNode

IMMEDIATE_MANAGER_LEVEL = 0


@dataclass(frozen=True)
class ApprovalCheck:
    approved: bool
    manager_email: str | None = None
    reason: str = ""


def _normalise(address: str | None) -> str:
    return (address or "").strip().lower()


def is_self_notification(message: EmailMessage, monitored_email: str) -> bool:
    """Return True when the monitored mailbox sent *message* itself."""

    sender = _normalise(message.sender_address)
    return bool(sender) and sender == _normalise(monitored_email)


def find_immediate_manager(org_tree: Iterable[OrgTreeNode]) -> OrgTreeNode | None:
    for node in org_tree:
        if node.level == IMMEDIATE_MANAGER_LEVEL:
            return node
    return None


def is_addressed(address: str, message: EmailMessage) -> bool:
    target = _normalise(address)
    return any(_normalise(recipient) == target for recipient in message.recipient_addresses())


def check_manager_approval(
    *,
    employee: Employee,
    message: EmailMessage,
    hr,
    enabled: bool,
    log=None,
) -> ApprovalCheck:
    """Require the requester's immediate manager among the message recipients.

    Missing org data lets the request through with a warning; only a known
    manager who is not on ``to``/``cc`` rejects it.
    """

    log = (log or structlog.get_logger()).bind(employee_id=employee.employee_id)
    if not enabled:
        return ApprovalCheck(approved=True, reason="manager check disabled")

    manager_node = find_immediate_manager(hr.get_org_tree(employee.employee_id))
    if manager_node is None:
        log.warning("manager_not_found_in_org_tree")
        return ApprovalCheck(approved=True, reason="no manager in org tree")

    try:
        manager = hr.get_employee_by_id(manager_node.manager.employee_id)
    except EmployeeNotFoundError:
        manager = None
    manager_email = manager.email if manager else ""
    if not manager_email:
        log.warning("manager_email_unknown", manager_id=manager_node.manager.employee_id)
        return ApprovalCheck(approved=True, reason="manager email unknown")

    if is_addressed(manager_email, message):
        log.info("manager_included", manager_email=manager_email)
        return ApprovalCheck(approved=True, manager_email=manager_email, reason="manager included")

    log.warning("manager_not_included", manager_email=manager_email)
    return ApprovalCheck(approved=False, manager_email=manager_email, reason="manager not included")
