"""End-to-end processing of one mailbox notification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import structlog

from leave_mail_bot.config import AppSettings
from leave_mail_bot.errors import ExtractionBackendError, GraphApiError, LeaveBotError, ResponseFormatError
from leave_mail_bot.extraction import LeaveExtractor, normalize_email_content, validate_batch
from leave_mail_bot.graph import MailClient, resolve_leave_email
from leave_mail_bot.greythr import GreytHRClient
from leave_mail_bot.logging_config import build_log_key, request_logger
from leave_mail_bot.models import (
    EmailContent,
    EmailMessage,
    Employee,
    LeaveRequest,
    SubmissionFailure,
    SubmissionSuccess,
)
from leave_mail_bot.notifications import Notifier
from leave_mail_bot.policy import check_manager_approval, is_self_notification
from leave_mail_bot.submission import submit_leave_request

STATUS_SKIPPED = "skipped"
STATUS_ERROR = "error"
STATUS_MISSING_FIELDS = "missing_fields"
STATUS_MANAGER_NOT_INCLUDED = "manager_not_included"
STATUS_PROCESSED = "processed"


@dataclass(frozen=True)
class Extracted:
    requests: List[LeaveRequest]


@dataclass(frozen=True)
class MissingFields:
    fields: List[str]


@dataclass(frozen=True)
class ExtractionFailed:
    message: str


ExtractionOutcome = Extracted | MissingFields | ExtractionFailed


@dataclass(frozen=True)
class PipelineResult:
    status: str
    message_id: str
    requester: str | None = None
    submissions: Tuple[SubmissionSuccess | SubmissionFailure, ...] = ()
    missing_fields: Tuple[str, ...] = ()
    error: str | None = None


@dataclass
class Collaborators:
    """External services used by one pipeline run."""

    mail: MailClient
    hr: GreytHRClient
    extractor: LeaveExtractor


def build_collaborators(settings: AppSettings) -> Collaborators:
    """Create fresh clients; their tokens live only as long as this run."""

    return Collaborators(
        mail=MailClient.from_settings(settings),
        hr=GreytHRClient.from_settings(settings),
        extractor=LeaveExtractor(api_key=settings.openai_api_key, model=settings.openai_model),
    )


def email_content(message: EmailMessage) -> EmailContent:
    return EmailContent(
        sender=message.sender_address or "Unknown",
        subject=message.subject,
        body=normalize_email_content(message.body.content, message.body_preview),
    )


def extract_leave_requests(
    message: EmailMessage,
    *,
    extractor: LeaveExtractor,
    default_leave_type: str,
    log=None,
) -> ExtractionOutcome:
    """Extract and validate every leave request in *message*."""

    log = log or structlog.get_logger()
    try:
        requests = extractor.extract(email_content(message), default_leave_type=default_leave_type, log=log)
    except (ResponseFormatError, ExtractionBackendError) as exc:
        log.error("leave_extraction_failed", error=str(exc))
        return ExtractionFailed(message=str(exc))

    validation = validate_batch(requests)
    if not validation.is_valid:
        log.warning(
            "leave_request_incomplete",
            missing_fields=validation.missing_fields,
            confidence=[request.confidence for request in requests],
        )
        return MissingFields(fields=validation.missing_fields)

    return Extracted(requests=requests)


def _lookup_employees(requests: List[LeaveRequest], hr, log) -> Dict[str, Employee]:
    employees: Dict[str, Employee] = {}
    for request in requests:
        key = request.from_email.lower()
        if key in employees:
            continue
        log.info("employee_lookup", email=request.from_email)
        employee = hr.get_employee_by_email(request.from_email)
        log.info("employee_found", employee_id=employee.employee_id, employee_no=employee.employee_no, name=employee.name)
        employees[key] = employee
    return employees


def _submit_and_notify(
    request: LeaveRequest,
    employee: Employee,
    *,
    hr,
    notifier: Notifier,
    log,
) -> SubmissionSuccess | SubmissionFailure:
    result = submit_leave_request(request, employee, hr=hr, log=log)
    if isinstance(result, SubmissionSuccess):
        notifier.send_success(employee, request)
    else:
        notifier.send_failure(employee, request, result.error)
    return result


def process_leave_email(
    leave_email: EmailMessage,
    *,
    settings: AppSettings,
    collaborators: Collaborators,
    notifier: Notifier,
    log,
) -> PipelineResult:
    requester = notifier.requester
    outcome = extract_leave_requests(
        leave_email,
        extractor=collaborators.extractor,
        default_leave_type=settings.default_leave_type,
        log=log,
    )

    if isinstance(outcome, MissingFields):
        notifier.send_missing_fields(outcome.fields)
        return PipelineResult(
            status=STATUS_MISSING_FIELDS,
            message_id=leave_email.id,
            requester=requester,
            missing_fields=tuple(outcome.fields),
        )
    if isinstance(outcome, ExtractionFailed):
        notifier.send_error(outcome.message)
        return PipelineResult(status=STATUS_ERROR, message_id=leave_email.id, requester=requester, error=outcome.message)

    employees = _lookup_employees(outcome.requests, collaborators.hr, log)

    for employee in employees.values():
        check = check_manager_approval(
            employee=employee,
            message=leave_email,
            hr=collaborators.hr,
            enabled=settings.manager_required,
            log=log,
        )
        if not check.approved:
            notifier.send_manager_required(employee)
            return PipelineResult(
                status=STATUS_MANAGER_NOT_INCLUDED,
                message_id=leave_email.id,
                requester=requester,
                error=check.reason,
            )

    # One independent outcome per request, in the order the email lists them.
    submissions = [
        _submit_and_notify(
            request,
            employees[request.from_email.lower()],
            hr=collaborators.hr,
            notifier=notifier,
            log=log.bind(item=index),
        )
        for index, request in enumerate(outcome.requests, start=1)
    ]
    log.info(
        "leave_email_processed",
        submitted=sum(1 for result in submissions if result.success),
        failed=sum(1 for result in submissions if not result.success),
    )
    return PipelineResult(
        status=STATUS_PROCESSED,
        message_id=leave_email.id,
        requester=requester,
        submissions=tuple(submissions),
    )


def process_notification(
    message_id: str,
    *,
    settings: AppSettings,
    collaborators: Collaborators | None = None,
) -> PipelineResult:
    """Fetch the notified message and run it through the leave pipeline."""

    collaborators = collaborators or build_collaborators(settings)
    log = structlog.get_logger().bind(message_id=message_id)

    try:
        trigger = collaborators.mail.get_message(message_id)
    except GraphApiError as exc:
        log.error("trigger_message_fetch_failed", error=str(exc), status_code=exc.status_code)
        return PipelineResult(status=STATUS_ERROR, message_id=message_id, error=str(exc))

    if is_self_notification(trigger, settings.monitored_email):
        log.info("self_notification_skipped", sender=trigger.sender_address)
        return PipelineResult(status=STATUS_SKIPPED, message_id=message_id, requester=trigger.sender_address)

    try:
        leave_email = resolve_leave_email(collaborators.mail, trigger, log)
    except GraphApiError as exc:
        log.warning("conversation_fetch_failed", error=str(exc))
        leave_email = trigger

    requester = leave_email.sender_address
    log_key = build_log_key(leave_email.received_date_time, requester)

    with request_logger(log_key, settings.logs_dir) as request_log:
        request_log = request_log.bind(message_id=leave_email.id, requester=requester)
        request_log.info("leave_email_received", subject=leave_email.subject, trigger_id=trigger.id)
        notifier = Notifier(
            mail=collaborators.mail,
            message=leave_email,
            requester=requester,
            monitored_email=settings.monitored_email,
            log=request_log,
        )
        try:
            return process_leave_email(
                leave_email,
                settings=settings,
                collaborators=collaborators,
                notifier=notifier,
                log=request_log,
            )
        except LeaveBotError as exc:
            request_log.error("leave_processing_failed", error=str(exc), error_type=type(exc).__name__)
            notifier.send_error(str(exc))
            return PipelineResult(status=STATUS_ERROR, message_id=leave_email.id, requester=requester, error=str(exc))
