"""Pydantic models for mail messages, leave requests and HR records."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Transaction = Literal["availed", "cancelled"]
Confidence = Literal["high", "medium", "low"]
Session = Literal[1, 2]

TRANSACTIONS = ("availed", "cancelled")
CONFIDENCE_LEVELS = ("high", "medium", "low")


class _WireModel(BaseModel):
    """Accept both camelCase wire names and snake_case attribute names."""

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Mail


class EmailAddress(_WireModel):
    address: str = ""
    name: str | None = None


class Recipient(_WireModel):
    email_address: EmailAddress = Field(default_factory=EmailAddress, alias="emailAddress")


class EmailBody(_WireModel):
    content: str = ""
    content_type: str | None = Field(None, alias="contentType")


class EmailMessage(_WireModel):
    """Subset of a Graph message resource the bot reads."""

    id: str
    subject: str = ""
    sender: Recipient | None = Field(None, alias="from")
    to_recipients: List[Recipient] = Field(default_factory=list, alias="toRecipients")
    cc_recipients: List[Recipient] = Field(default_factory=list, alias="ccRecipients")
    body: EmailBody = Field(default_factory=EmailBody)
    body_preview: str = Field("", alias="bodyPreview")
    received_date_time: str | None = Field(None, alias="receivedDateTime")
    conversation_id: str | None = Field(None, alias="conversationId")

    @field_validator("subject", "body_preview", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("to_recipients", "cc_recipients", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def sender_address(self) -> str:
        if self.sender is None:
            return ""
        return self.sender.email_address.address or ""

    def recipient_addresses(self) -> List[str]:
        """Return every ``to`` and ``cc`` address in message order."""

        return [
            recipient.email_address.address
            for recipient in [*self.to_recipients, *self.cc_recipients]
            if recipient.email_address.address
        ]


class EmailContent(BaseModel):
    """Normalised message view handed to the prompt builder."""

    sender: str
    subject: str = ""
    body: str = ""


class GraphNotification(_WireModel):
    subscription_id: str | None = Field(None, alias="subscriptionId")
    change_type: str | None = Field(None, alias="changeType")
    resource: str | None = None
    resource_data: Dict[str, Any] | None = Field(None, alias="resourceData")
    client_state: str | None = Field(None, alias="clientState")

    @property
    def message_id(self) -> str | None:
        if not self.resource_data:
            return None
        return self.resource_data.get("id")


class GraphNotificationPayload(_WireModel):
    value: List[GraphNotification] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Leave requests


class LeaveRequest(_WireModel):
    """A single leave transaction extracted from an email."""

    from_email: str = Field(..., alias="fromEmail")
    from_date: date | None = Field(None, alias="fromDate")
    to_date: date | None = Field(None, alias="toDate")
    leave_type: str | None = Field(None, alias="leaveType")
    transaction: Transaction | None = "availed"
    reason: str | None = None
    confidence: Confidence = "low"
    from_session: Session | None = Field(None, alias="fromSession")
    to_session: Session | None = Field(None, alias="toSession")

    @property
    def is_complete(self) -> bool:
        return all(
            value is not None
            for value in (self.from_date, self.to_date, self.leave_type, self.transaction)
        )


class ValidationResult(BaseModel):
    is_valid: bool
    missing_fields: List[str] = Field(default_factory=list)
    confidence: Confidence = "low"


class BatchValidation(BaseModel):
    is_valid: bool
    missing_fields: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# greytHR


class Employee(_WireModel):
    employee_id: str = Field(..., alias="employeeId")
    employee_no: str = Field("", alias="employeeNo")
    name: str = ""
    email: str = ""

    @field_validator("employee_id", "employee_no", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)


class OrgManager(_WireModel):
    employee_id: str = Field(..., alias="employeeId")
    employee_no: str = Field("", alias="employeeNo")
    name: str = ""

    @field_validator("employee_id", "employee_no", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)


class OrgTreeNode(_WireModel):
    manager: OrgManager
    level: int


class LeaveDetails(BaseModel):
    leave_type: str | None
    transaction: Transaction | None
    from_date: date | None
    to_date: date | None
    reason: str | None = None
    from_session: Session | None = None
    to_session: Session | None = None

    @classmethod
    def from_request(cls, request: LeaveRequest) -> "LeaveDetails":
        return cls(
            leave_type=request.leave_type,
            transaction=request.transaction,
            from_date=request.from_date,
            to_date=request.to_date,
            reason=request.reason,
            from_session=request.from_session,
            to_session=request.to_session,
        )


class SubmissionSuccess(BaseModel):
    employee: Employee
    leave_details: LeaveDetails
    backend_response: Any = None

    success: Literal[True] = True


class SubmissionFailure(BaseModel):
    employee_email: str
    leave_details: LeaveDetails
    error: str

    success: Literal[False] = False
