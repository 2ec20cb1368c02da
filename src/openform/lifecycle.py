from __future__ import annotations

from typing import Any

from openform.errors import ConflictError
from openform.utils import now_utc

DRAFT = "draft"
ACTIVE = "active"
CLOSED = "closed"
STATUSES = (DRAFT, ACTIVE, CLOSED)

# action -> (statuses it may start from, resulting status)
TRANSITIONS: dict[str, tuple[frozenset[str], str]] = {
    "publish": (frozenset({DRAFT, CLOSED}), ACTIVE),
    "close": (frozenset({ACTIVE}), CLOSED),
}

PUBLIC_OPEN = "open"
PUBLIC_NOT_AVAILABLE = "not_available"
PUBLIC_NOT_ACCEPTING = "not_accepting"

PUBLIC_MESSAGES = {
    PUBLIC_OPEN: "",
    PUBLIC_NOT_AVAILABLE: "This form is not available yet.",
    PUBLIC_NOT_ACCEPTING: "This form is not accepting responses.",
}


def status_of(form: dict[str, Any]) -> str:
    status = str(form.get("status") or DRAFT).lower()
    return status if status in STATUSES else DRAFT


def can_transition(form: dict[str, Any], action: str) -> bool:
    if action not in TRANSITIONS:
        return False
    sources, _ = TRANSITIONS[action]
    return status_of(form) in sources


def transition(form: dict[str, Any], action: str) -> dict[str, Any]:
    """Apply ``action`` and return the updated copy of ``form``."""
    if action not in TRANSITIONS:
        raise ValueError(f"unknown lifecycle action: {action}")
    if not can_transition(form, action):
        raise ConflictError(f"cannot {action} a form that is {status_of(form)}")
    _, target = TRANSITIONS[action]
    return {**form, "status": target, "updated_at": now_utc()}


def publish(form: dict[str, Any]) -> dict[str, Any]:
    return transition(form, "publish")


def close(form: dict[str, Any]) -> dict[str, Any]:
    return transition(form, "close")


def accepts_responses(form: dict[str, Any]) -> bool:
    return status_of(form) == ACTIVE


def is_editable(form: dict[str, Any]) -> bool:
    return status_of(form) != CLOSED


def public_state(form: dict[str, Any]) -> str:
    status = status_of(form)
    if status == ACTIVE:
        return PUBLIC_OPEN
    if status == CLOSED:
        return PUBLIC_NOT_ACCEPTING
    return PUBLIC_NOT_AVAILABLE
