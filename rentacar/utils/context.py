"""Context management for structured logging and tracing.

This module provides context variables for propagating request context
throughout the application, including across awaited calls and tasks
spawned from a request.
"""

import contextvars
from contextlib import contextmanager
from typing import Optional, Any, Dict
from opentelemetry import trace

# Context variables for request/operation tracking
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
user_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "user_name", default=None
)
action_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "action", default=None
)

_VARS = {
    "request_id": request_id_var,
    "user_name": user_name_var,
    "action": action_var,
}


def set_context(
    request_id: Optional[str] = None,
    user_name: Optional[str] = None,
    action: Optional[str] = None,
) -> None:
    """Set context variables.

    Args:
        request_id: Unique request identifier
        user_name: Username of the signed-in customer or admin
        action: Operation being performed (e.g., 'auth.refresh', 'api.request')
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if user_name is not None:
        user_name_var.set(user_name)
    if action is not None:
        action_var.set(action)


def get_context() -> Dict[str, Any]:
    """Get all current context values as a dictionary.

    Returns:
        Dictionary with all non-None context values
    """
    context = {}
    for key, var in _VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def get_request_id() -> Optional[str]:
    """Get current request ID."""
    return request_id_var.get()


def get_user_name() -> Optional[str]:
    """Get current username."""
    return user_name_var.get()


def get_action() -> Optional[str]:
    """Get current action."""
    return action_var.get()


def clear_context() -> None:
    """Clear all context variables."""
    for var in _VARS.values():
        var.set(None)


@contextmanager
def operation_context(
    action: str,
    request_id: Optional[str] = None,
    user_name: Optional[str] = None,
):
    """Context manager for setting operation context with automatic cleanup.

    This also sets the action as a span attribute if there's an active span.

    Example:
        with operation_context("auth.refresh"):
            logger.info("Refreshing credentials")
    """
    old_context = get_context()

    try:
        set_context(request_id=request_id, user_name=user_name, action=action)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("action", action)
            if user_name:
                span.set_attribute("user.name", user_name)

        yield

    finally:
        clear_context()
        for key, value in old_context.items():
            _VARS[key].set(value)


def get_trace_context() -> Dict[str, str]:
    """Get current OpenTelemetry trace context.

    Returns:
        Dictionary with trace_id and span_id (if available)
    """
    context = {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

    return context
