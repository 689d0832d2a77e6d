"""Thin wrapper around the Microsoft Graph mail endpoints the bot uses."""

from __future__ import annotations

from typing import Any, Callable, List, Mapping
from urllib.parse import quote

import requests
import structlog
from msal import ConfidentialClientApplication

from leave_mail_bot.config import AppSettings
from leave_mail_bot.errors import GraphApiError
from leave_mail_bot.models import EmailMessage

GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
MESSAGE_FIELDS = (
    "id",
    "subject",
    "from",
    "toRecipients",
    "ccRecipients",
    "body",
    "bodyPreview",
    "receivedDateTime",
    "conversationId",
)


def acquire_graph_token(settings: AppSettings, *, app_factory=ConfidentialClientApplication) -> str:
    """Acquire an app-only Graph token with the client-credential grant."""

    app = app_factory(
        client_id=settings.bot_app_id,
        client_credential=settings.bot_app_secret,
        authority=f"https://login.microsoftonline.com/{settings.tenant_id}",
    )
    result = app.acquire_token_for_client(scopes=GRAPH_SCOPES)
    if "access_token" not in result:
        error = result.get("error_description") or result.get("error") or "unknown error"
        raise GraphApiError(f"Graph authentication failed: {error}", response=result)
    return result["access_token"]


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason or "unknown error"
    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
    return response.text or "unknown error"


def _parse_messages(load: Callable[[], Any]) -> List[EmailMessage]:
    try:
        return [EmailMessage.model_validate(item) for item in load()]
    except (ValueError, AttributeError) as exc:
        structlog.get_logger().error("graph_response_malformed", error=str(exc))
        raise GraphApiError("Unexpected message data from Microsoft Graph") from exc


class MailClient:
    """Read and reply to messages of the monitored mailbox."""

    def __init__(
        self,
        *,
        mailbox: str,
        token_provider: Callable[[], str],
        session: requests.Session | None = None,
        base_url: str = GRAPH_API_ENDPOINT,
    ) -> None:
        self.mailbox = mailbox
        self._token_provider = token_provider
        self._token: str | None = None
        self._session = session or requests.Session()
        self._base_url = f"{base_url.rstrip('/')}/users/{quote(mailbox, safe='@')}"

    @classmethod
    def from_settings(cls, settings: AppSettings, *, session: requests.Session | None = None) -> "MailClient":
        return cls(
            mailbox=settings.monitored_email,
            token_provider=lambda: acquire_graph_token(settings),
            session=session,
        )

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            self._token = self._token_provider()
        return {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            message = _error_message(exc.response) if exc.response is not None else str(exc)
            structlog.get_logger().error(
                "graph_request_failed",
                method=method,
                path=path,
                status_code=status_code,
                error=message,
            )
            raise GraphApiError(message, status_code=status_code) from exc
        except requests.RequestException as exc:
            structlog.get_logger().error("graph_request_failed", method=method, path=path, error=str(exc))
            raise GraphApiError(str(exc)) from exc
        return response

    def get_message(self, message_id: str) -> EmailMessage:
        response = self._request("GET", f"/messages/{quote(message_id)}")
        return _parse_messages(lambda: [response.json()])[0]

    def list_conversation(self, conversation_id: str) -> List[EmailMessage]:
        """Return the messages of a conversation, oldest first."""

        escaped = conversation_id.replace("'", "''")
        params = {
            "$filter": f"conversationId eq '{escaped}'",
            "$orderby": "receivedDateTime asc",
            "$select": ",".join(MESSAGE_FIELDS),
        }
        response = self._request("GET", "/messages", params=params)
        return _parse_messages(lambda: response.json().get("value", []))

    def reply(self, message_id: str, payload: Mapping[str, Any]) -> None:
        self._request("POST", f"/messages/{quote(message_id)}/reply", json=dict(payload))


def resolve_leave_email(client: MailClient, trigger: EmailMessage, log=None) -> EmailMessage:
    """Return the oldest message of *trigger*'s conversation.

    The first message of a thread is the leave request itself; later ones are
    replies to it. Without a conversation id the triggering message is used.
    """

    log = log or structlog.get_logger()
    if not trigger.conversation_id:
        log.warning("conversation_id_missing", message_id=trigger.id)
        return trigger

    thread = client.list_conversation(trigger.conversation_id)
    log.info("conversation_fetched", conversation_id=trigger.conversation_id, count=len(thread))
    if not thread:
        return trigger

    leave_email = thread[0]
    if leave_email.id != trigger.id:
        log.info("leave_email_resolved_from_thread", message_id=leave_email.id, sender=leave_email.sender_address)
    return leave_email
