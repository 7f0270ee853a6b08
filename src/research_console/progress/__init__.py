"""Query run progress: step state machine and live event stream consumer."""

from .consumer import CONNECTION_INTERRUPTED, ProgressConsumer, ProgressTransport
from .models import (
    DEFAULT_PIPELINE,
    EstimateEvent,
    ProgressEvent,
    ProgressStep,
    StepDefinition,
    StepEvent,
    StepStatus,
    parse_event,
)
from .store import ProgressStore

__all__ = [
    "CONNECTION_INTERRUPTED",
    "DEFAULT_PIPELINE",
    "EstimateEvent",
    "ProgressConsumer",
    "ProgressEvent",
    "ProgressStep",
    "ProgressStore",
    "ProgressTransport",
    "StepDefinition",
    "StepEvent",
    "StepStatus",
    "parse_event",
]
