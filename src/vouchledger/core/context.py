"""Current-actor context using ContextVars.

The identity performing an operation is set once at the edge (CLI command,
host application request handler) and read by the identity provider's
``current_actor_id`` without threading it through every call.
"""

from contextvars import ContextVar, Token

_current_actor_id: ContextVar[int | None] = ContextVar("current_actor_id", default=None)


def get_current_actor_id() -> int | None:
    """Get the id of the identity acting in the current context."""
    return _current_actor_id.get()


def set_current_actor_id(actor_id: int | None) -> Token:
    """Set the acting identity for the current context.

    Returns:
        Token that can be passed to ``reset_current_actor_id``.
    """
    return _current_actor_id.set(actor_id)


def reset_current_actor_id(token: Token) -> None:
    """Restore the acting identity that was current before ``token`` was issued."""
    _current_actor_id.reset(token)
