"""Tests for run-scoped logging context."""

import asyncio

import structlog

from research_console.observability import (
    bind_run_context,
    clear_run_context,
    get_current_run_id,
    get_current_step_id,
    get_run_logger,
    step_context,
)


async def test_run_logging_context_isolation():
    """Each async task should see only its own bound run_id."""

    async def worker(run_id: str) -> None:
        bind_run_context(run_id)
        await asyncio.sleep(0)
        assert get_current_run_id() == run_id
        clear_run_context()
        await asyncio.sleep(0)
        assert get_current_run_id() is None

    await asyncio.gather(worker("run-1"), worker("run-2"))


def test_run_logger_is_usable_without_binding():
    clear_run_context()
    logger = get_run_logger()
    logger.info("no_context")
    assert get_current_run_id() is None


def test_step_context_nests_inside_run_context():
    """step_id is bound only while an event is applied; run_id stays bound."""
    clear_run_context()
    bind_run_context("run-7")
    try:
        with step_context("openalex"):
            assert get_current_step_id() == "openalex"
            assert structlog.contextvars.get_contextvars() == {"run_id": "run-7", "step_id": "openalex"}
            with step_context("pubmed"):
                assert get_current_step_id() == "pubmed"
            assert get_current_step_id() == "openalex"

        assert get_current_step_id() is None
        assert structlog.contextvars.get_contextvars() == {"run_id": "run-7"}
    finally:
        clear_run_context()
