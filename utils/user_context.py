"""Propagate the gate-resolved identity (email) through the call stack."""

from contextvars import ContextVar

_current_email: ContextVar[str | None] = ContextVar("current_email", default=None)


def get_current_email() -> str:
    """
    Get the authenticated email for the current request.

    Raises RuntimeError if no identity is set. Code that needs an
    identity outside of a gated request is a bug.
    """
    email = _current_email.get()
    if email is None:
        raise RuntimeError(
            "No authenticated identity set. This usually means you're calling "
            "protected code outside of a request admitted by the session gate."
        )
    return email


def set_current_email(email: str) -> None:
    """
    Set the authenticated email in context.

    Called by AuthMiddleware after the session gate admits a request.
    """
    _current_email.set(email)


def clear_current_email() -> None:
    """
    Clear the identity.

    Called by AuthMiddleware in a finally block after the request completes.
    """
    _current_email.set(None)

