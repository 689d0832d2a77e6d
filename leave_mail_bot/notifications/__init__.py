"""Reply notifications sent back into the leave request thread."""

from .messages import (
    build_error_reply,
    build_failure_reply,
    build_manager_required_reply,
    build_missing_fields_reply,
    build_reply_recipients,
    build_success_reply,
)
from .sender import Notifier

__all__ = [
    "Notifier",
    "build_error_reply",
    "build_failure_reply",
    "build_manager_required_reply",
    "build_missing_fields_reply",
    "build_reply_recipients",
    "build_success_reply",
]
