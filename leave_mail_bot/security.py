"""Utilities for authenticating Microsoft Graph change notifications."""

from __future__ import annotations

import hmac

VALIDATION_TOKEN_PARAM = "validationToken"


def is_valid_client_state(*, expected: str | None, received: str | None) -> bool:
    """Return True when the notification carries the subscription's client state.

    Without a configured client state every notification is accepted.
    """

    if not expected:
        return True
    if not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
