"""Operation correlation ID via contextvars."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

operation_id_var: ContextVar[str] = ContextVar("operation_id", default="")


def generate_operation_id() -> str:
    """Return a new 32-character hex operation ID."""
    return uuid.uuid4().hex


def get_operation_id() -> str:
    """Read the current operation ID from the contextvar."""
    return operation_id_var.get()
