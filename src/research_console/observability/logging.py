"""Structured logging with per-run context using structlog and contextvars."""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

import structlog

# Context variables for the run being tracked and the step an event addresses
current_run_id: ContextVar[str | None] = ContextVar("current_run_id", default=None)
current_step_id: ContextVar[str | None] = ContextVar("current_step_id", default=None)

_configured = False


def setup_structured_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog with per-run context.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Render JSON lines instead of human-readable console output
    """
    global _configured
    if _configured:
        return

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject run context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
    )

    _configured = True


def bind_run_context(run_id: str) -> None:
    """Bind run context for all subsequent logs in this async context."""
    current_run_id.set(run_id)
    structlog.contextvars.bind_contextvars(run_id=run_id)


def clear_run_context() -> None:
    """Clear run context after tracking ends."""
    current_run_id.set(None)
    current_step_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_run_logger(name: str = "research_console") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger carrying the bound run context."""
    return structlog.get_logger(name)


def get_current_run_id() -> str | None:
    """Get the current run ID from context."""
    return current_run_id.get()


@contextmanager
def step_context(step_id: str) -> Iterator[None]:
    """Bind ``step_id`` to logs emitted while one event is applied.

    The run context stays bound; the previous step (if any) is restored on exit.

    Args:
        step_id: Id of the pipeline step the event addresses
    """
    token = current_step_id.set(step_id)
    try:
        with structlog.contextvars.bound_contextvars(step_id=step_id):
            yield
    finally:
        current_step_id.reset(token)


def get_current_step_id() -> str | None:
    """Get the step ID bound by the innermost step_context, if any."""
    return current_step_id.get()
