"""Map validated leave requests onto greytHR leave transactions."""

from __future__ import annotations

from typing import Any, Dict

import structlog

from leave_mail_bot.errors import LeaveBotError, MissingRequiredFieldError
from leave_mail_bot.extraction.validation import missing_required_fields
from leave_mail_bot.models import Employee, LeaveDetails, LeaveRequest, SubmissionFailure, SubmissionSuccess

DEFAULT_REASON = "Leave request via email"


def build_leave_application(request: LeaveRequest, employee: Employee) -> Dict[str, Any]:
    """Return the greytHR transaction payload for *request*.

    Session keys are only present when the request carries a session.
    """

    missing = missing_required_fields(request)
    if missing:
        raise MissingRequiredFieldError(missing)

    application: Dict[str, Any] = {
        "employeeNo": employee.employee_no,
        "fromDate": request.from_date.isoformat(),
        "toDate": request.to_date.isoformat(),
        "leaveTypeDescription": request.leave_type,
        "leaveTransactionTypeDescription": request.transaction,
        "reason": request.reason or DEFAULT_REASON,
    }
    if request.from_session is not None:
        application["fromSession"] = request.from_session
    if request.to_session is not None:
        application["toSession"] = request.to_session
    return application


def submit_leave_request(
    request: LeaveRequest,
    employee: Employee,
    *,
    hr,
    log=None,
) -> SubmissionSuccess | SubmissionFailure:
    log = (log or structlog.get_logger()).bind(
        employee_no=employee.employee_no,
        leave_type=request.leave_type,
        from_date=str(request.from_date),
        to_date=str(request.to_date),
    )
    details = LeaveDetails.from_request(request)

    try:
        application = build_leave_application(request, employee)
        log.info("leave_application_submitting", application=application)
        response = hr.apply_leave(application)
    except LeaveBotError as exc:
        log.error("leave_application_failed", error=str(exc))
        return SubmissionFailure(employee_email=request.from_email, leave_details=details, error=str(exc))

    log.info("leave_application_submitted")
    return SubmissionSuccess(employee=employee, leave_details=details, backend_response=response)
