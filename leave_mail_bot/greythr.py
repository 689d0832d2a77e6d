"""greytHR API client: authentication, employee lookups and leave transactions."""

from __future__ import annotations

from typing import Any, Callable, List, Mapping
from urllib.parse import quote

import requests
import structlog
from pydantic import ValidationError

from leave_mail_bot.config import AppSettings
from leave_mail_bot.errors import EmployeeNotFoundError, HRBackendError
from leave_mail_bot.models import Employee, OrgTreeNode

DOMAIN_HEADER = "x-greythr-domain"
TOKEN_HEADER = "ACCESS-TOKEN"


def _error_message(response: requests.Response | None, fallback: str) -> str:
    if response is None:
        return fallback
    try:
        data = response.json()
    except ValueError:
        return response.text or fallback
    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])
    return response.text or fallback


def _malformed(what: str, endpoint: str, detail: Any) -> HRBackendError:
    structlog.get_logger().error("greythr_response_malformed", what=what, endpoint=endpoint, error=str(detail))
    return HRBackendError(f"Unexpected {what} data from GreytHR")


def acquire_greythr_token(settings: AppSettings, *, session: requests.Session | None = None) -> str:
    """Exchange the API user credentials for a greytHR access token."""

    log = structlog.get_logger()
    http = session or requests.Session()
    try:
        response = http.post(
            f"{settings.greythr_auth_url}/uas/v1/oauth2/client-token",
            json={},
            auth=(settings.greythr_username, settings.greythr_password),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        response = getattr(exc, "response", None)
        message = _error_message(response, str(exc))
        log.error(
            "greythr_auth_failed",
            status_code=getattr(response, "status_code", None),
            error=message,
        )
        raise HRBackendError(f"GreytHR authentication failed: {message}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise HRBackendError("GreytHR authentication failed: unreadable token response") from exc
    token = data.get("access_token") if isinstance(data, Mapping) else None
    if not token:
        raise HRBackendError("GreytHR authentication failed: no access token in response")
    log.info("greythr_auth_succeeded")
    return token


class GreytHRClient:
    """Encapsulate greytHR REST calls for easier testing."""

    def __init__(
        self,
        *,
        api_url: str,
        domain: str,
        token_provider: Callable[[], str],
        session: requests.Session | None = None,
    ) -> None:
        self._api_url = api_url if api_url.endswith("/") else f"{api_url}/"
        self.domain = domain
        self._token_provider = token_provider
        self._token: str | None = None
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: AppSettings, *, session: requests.Session | None = None) -> "GreytHRClient":
        http = session or requests.Session()
        return cls(
            api_url=settings.greythr_api_url,
            domain=settings.greythr_domain,
            token_provider=lambda: acquire_greythr_token(settings, session=http),
            session=http,
        )

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            self._token = self._token_provider()
        return {
            TOKEN_HEADER: self._token,
            DOMAIN_HEADER: self.domain,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        try:
            response = self._session.request(method, f"{self._api_url}{endpoint}", headers=self._headers(), **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            response = getattr(exc, "response", None)
            message = _error_message(response, str(exc))
            status_code = getattr(response, "status_code", None)
            structlog.get_logger().error(
                "greythr_request_failed",
                method=method,
                endpoint=endpoint,
                status_code=status_code,
                error=message,
            )
            raise HRBackendError(message, status_code=status_code, response=response) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _get_employee(self, endpoint: str, not_found: str) -> Employee:
        try:
            data = self._request("GET", endpoint)
        except HRBackendError as exc:
            if exc.status_code == 404:
                raise EmployeeNotFoundError(not_found, status_code=404) from exc
            raise
        if not isinstance(data, Mapping) or not data.get("employeeId"):
            raise EmployeeNotFoundError(not_found)
        try:
            return Employee.model_validate(data)
        except ValidationError as exc:
            raise _malformed("employee", endpoint, exc) from exc

    def get_employee_by_email(self, email: str) -> Employee:
        employee = self._get_employee(
            f"employee/v2/employees/lookup?q={quote(email)}",
            f"Employee not found with email: {email}",
        )
        if not employee.email:
            employee = employee.model_copy(update={"email": email})
        return employee

    def get_employee_by_id(self, employee_id: str) -> Employee:
        return self._get_employee(
            f"employee/v2/employees/{quote(str(employee_id))}",
            f"Employee not found with id: {employee_id}",
        )

    def get_org_tree(self, employee_id: str) -> List[OrgTreeNode]:
        endpoint = f"employee/v2/employees/org-tree/{quote(str(employee_id))}"
        data = self._request("GET", endpoint)
        if not data:
            return []
        if isinstance(data, Mapping):
            data = data.get("data") or data.get("orgTree") or []
        if not isinstance(data, list):
            raise _malformed("org tree", endpoint, "expected a list of nodes")
        try:
            return [OrgTreeNode.model_validate(node) for node in data]
        except ValidationError as exc:
            raise _malformed("org tree", endpoint, exc) from exc

    def apply_leave(self, application: Mapping[str, Any]) -> Any:
        return self._request("POST", "leave/v2/employee/transactions", json=dict(application))
