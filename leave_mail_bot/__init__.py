"""Leave mail bot package initialisation."""

from .background import process_in_background  # noqa: F401
from .config import AppSettings, get_settings  # noqa: F401
from .logging_config import build_log_key, configure_logging, request_logger  # noqa: F401
from .models import Employee, EmailMessage, LeaveRequest, OrgTreeNode  # noqa: F401

__all__ = [
    "AppSettings",
    "get_settings",
    "process_in_background",
    "configure_logging",
    "build_log_key",
    "request_logger",
    "Employee",
    "EmailMessage",
    "LeaveRequest",
    "OrgTreeNode",
]
