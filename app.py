"""Application entry point for the leave mail bot."""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Callable
from uuid import uuid4

import structlog
from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

from leave_mail_bot.background import process_in_background
from leave_mail_bot.config import AppSettings, get_settings
from leave_mail_bot.logging_config import configure_logging
from leave_mail_bot.models import GraphNotificationPayload
from leave_mail_bot.pipeline import process_notification
from leave_mail_bot.security import VALIDATION_TOKEN_PARAM, is_valid_client_state

NotificationProcessor = Callable[[str], object]

_LOGGING_CONFIGURED = False


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def create_app(
    settings: AppSettings | None = None,
    *,
    processor: NotificationProcessor | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        configure_logging()
        _LOGGING_CONFIGURED = True

    settings = settings or get_settings()
    processor = processor or partial(process_notification, settings=settings)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.logger.setLevel("INFO")

    _register_error_handlers(flask_app)

    @flask_app.route("/email-notification", methods=["POST"])
    def email_notification():
        log = structlog.get_logger()
        log.info("graph_notification_received")

        validation_token = request.args.get(VALIDATION_TOKEN_PARAM)
        if validation_token:
            log.info("subscription_validation_requested")
            return Response(validation_token, status=200, mimetype="text/plain")

        try:
            payload = GraphNotificationPayload.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            log.warning("graph_notification_invalid", errors=exc.error_count())
            response = jsonify({"error": "invalid_payload"})
            response.status_code = 400
            return response

        if not payload.value:
            log.info("graph_notification_empty")
            return "", 200

        # Graph may batch notifications; only the first one is processed.
        notification = payload.value[0]
        if not is_valid_client_state(expected=settings.graph_client_state, received=notification.client_state):
            log.warning("graph_notification_client_state_mismatch", subscription_id=notification.subscription_id)
            response = jsonify({"error": "invalid_client_state"})
            response.status_code = 401
            return response

        message_id = notification.message_id
        if not message_id:
            log.warning("graph_notification_without_message_id", subscription_id=notification.subscription_id)
            return "", 200

        trace_id = str(uuid4())
        log.info("graph_notification_accepted", message_id=message_id, trace_id=trace_id)
        process_in_background(processor, message_id, trace_id=trace_id)
        return "", 200

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        health["config"] = "valid"
        health["monitored_mailbox"] = settings.monitored_email
        health["manager_required"] = settings.manager_required
        return jsonify(health), 200

    return flask_app


def main() -> None:  # pragma: no cover - manual execution helper
    settings = get_settings()
    application = create_app(settings)
    ssl_context = None
    if settings.use_https:
        ssl_context = (settings.ssl_cert_path, settings.ssl_key_path)
    structlog.get_logger().info(
        "server_starting",
        port=settings.port,
        https=settings.use_https,
        public_url=settings.public_url,
    )
    application.run(host="0.0.0.0", port=settings.port, ssl_context=ssl_context)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
