"""Propagate the acting user's identity through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id_or_none() -> UUID | None:
    """
    Get current user ID from context.

    Returns None when the caller is unauthenticated; invoice changes made
    that way are credited to the system account.
    """
    return _current_user_id.get()


def set_current_user_id(user_id: UUID) -> None:
    """
    Set current user ID in context.

    Called by the upstream authentication layer once it has identified the caller.
    """
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """
    Clear user context.

    Must be called in a finally block after the request completes
    to prevent context leakage between requests.
    """
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Context manager for temporarily acting as a user.

    Useful for tests and back-office scripts that create or edit
    invoices on behalf of a specific person.

    Example:
        with user_context(accountant_id):
            invoice_service.create(payload)  # created_by = accountant_id
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
