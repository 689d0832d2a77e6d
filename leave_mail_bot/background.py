"""Run mailbox notification processing off the webhook request thread."""

from contextvars import Context, copy_context
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars


_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="leave-mail")


def _worker_context(**bindings: Any) -> Context:
    """Copy the caller's context and bind *bindings* it does not carry yet."""

    context = copy_context()
    current = context.run(get_contextvars)
    missing = {key: value for key, value in bindings.items() if value is not None and current.get(key) != value}
    if missing:
        context.run(bind_contextvars, **missing)
    return context


def process_in_background(
    processor: Callable[[str], Any],
    message_id: str,
    *,
    trace_id: str | None = None,
) -> Future:
    """Run *processor* for one notified message; crashes are logged, not raised."""

    def job() -> None:
        try:
            processor(message_id)
        except Exception:
            structlog.get_logger().exception("notification_processing_crashed")

    context = _worker_context(trace_id=trace_id, message_id=message_id)
    return _executor.submit(context.run, job)
