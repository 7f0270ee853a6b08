"""In-memory progress state for a single query run."""

import logging
import time
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from .models import ProgressStep, StepDefinition, StepStatus

logger = logging.getLogger(__name__)

Listener = Callable[["ProgressStore"], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProgressStore:
    """Authoritative step-by-step progress of one run.

    Every operation is total: an unknown step id is a no-op, never an error,
    so late or out-of-order events from the stream cannot break the store.
    Steps are immutable snapshots; an operation replaces only the step it
    addresses, so all other step objects keep their identity.

    State machine per step::

        idle -> active -> completed
                active -> error
        completed | error -> active   (retry / replay)
    """

    def __init__(self, clock: Callable[[], int] | None = None):
        """Initialize an empty store.

        Args:
            clock: Returns the current time in epoch milliseconds
        """
        self._clock = clock or _now_ms
        self._steps: tuple[ProgressStep, ...] = ()
        self._estimated_seconds: float | None = None
        self._listeners: list[Listener] = []

    # --- Read-only views ---

    @property
    def steps(self) -> tuple[ProgressStep, ...]:
        return self._steps

    @property
    def estimated_seconds(self) -> float | None:
        return self._estimated_seconds

    def get_step(self, step_id: str) -> ProgressStep | None:
        return next((step for step in self._steps if step.id == step_id), None)

    @property
    def completed_count(self) -> int:
        return sum(1 for step in self._steps if step.status == StepStatus.COMPLETED)

    @property
    def progress_percent(self) -> int:
        """Share of completed steps, 0 for an empty run."""
        if not self._steps:
            return 0
        return round(self.completed_count / len(self._steps) * 100)

    def remaining_seconds(self, elapsed_seconds: float) -> float | None:
        """Seconds left according to the estimate, or None without one."""
        if self._estimated_seconds is None:
            return None
        return max(0, self._estimated_seconds - elapsed_seconds)

    # --- Operations ---

    def initialize(self, steps: Iterable[StepDefinition | Mapping[str, Any]]) -> None:
        """Replace the run with the given steps, all idle, and clear the estimate."""
        fresh: dict[str, ProgressStep] = {}
        for definition in steps:
            if not isinstance(definition, StepDefinition):
                definition = StepDefinition.model_validate(definition)
            if definition.id in fresh:
                logger.warning(f"Duplicate step id '{definition.id}' ignored")
                continue
            fresh[definition.id] = ProgressStep(id=definition.id, label=definition.label)

        self._steps = tuple(fresh.values())
        self._estimated_seconds = None
        logger.debug(f"Initialized run with {len(self._steps)} steps")
        self._notify()

    def start_step(self, step_id: str, detail: str | None = None) -> None:
        """Mark a step active. Re-entering a finished step restarts it."""
        changes: dict[str, Any] = {
            "status": StepStatus.ACTIVE,
            "started_at": self._clock(),
            "completed_at": None,
        }
        if detail is not None:
            changes["detail"] = detail
        self._update(step_id, lambda step: changes)

    def complete_step(self, step_id: str, metadata: Mapping[str, Any] | None = None) -> None:
        """Mark a step completed, merging metadata into what it already has."""
        completed_at = self._clock()
        self._update(
            step_id,
            lambda step: {
                "status": StepStatus.COMPLETED,
                "completed_at": completed_at,
                "metadata": MappingProxyType({**step.metadata, **(metadata or {})}),
            },
        )

    def fail_step(self, step_id: str, message: str | None = None) -> None:
        """Mark a step failed. Without a message the previous detail stays."""
        changes: dict[str, Any] = {
            "status": StepStatus.ERROR,
            "completed_at": self._clock(),
        }
        if message is not None:
            changes["detail"] = message
        self._update(step_id, lambda step: changes)

    def set_estimated_time(self, seconds: float) -> None:
        self._estimated_seconds = seconds
        self._notify()

    def reset(self) -> None:
        """End the run: no steps, no estimate."""
        self._steps = ()
        self._estimated_seconds = None
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every state change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Internals ---

    def _update(self, step_id: str, changes: Callable[[ProgressStep], dict[str, Any]]) -> None:
        for index, step in enumerate(self._steps):
            if step.id == step_id:
                updated = step.model_copy(update=changes(step))
                self._steps = (*self._steps[:index], updated, *self._steps[index + 1 :])
                self._notify()
                return
        logger.debug(f"Ignoring transition for unknown step '{step_id}'")

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
