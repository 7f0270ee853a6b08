"""Data models for query run progress and the events that drive it."""

import json
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from ..exceptions import MalformedEventError


class StepStatus(str, Enum):
    """Status of one pipeline step."""

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


class StepDefinition(BaseModel):
    """One stage of the pipeline, as supplied when a run starts."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str


DEFAULT_PIPELINE: tuple[StepDefinition, ...] = (
    StepDefinition(id="intent", label="Refining query intent"),
    StepDefinition(id="openalex", label="Searching OpenAlex"),
    StepDefinition(id="patents", label="Searching Google Patents"),
    StepDefinition(id="pubmed", label="Searching PubMed"),
    StepDefinition(id="llm", label="Analyzing with LLMs"),
)


class ProgressStep(BaseModel):
    """Snapshot of a step. Transitions replace the snapshot, never edit it."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    detail: str | None = None
    status: StepStatus = StepStatus.IDLE

    # Epoch milliseconds
    started_at: int | None = None
    completed_at: int | None = None

    # Read-only view; complete_step builds a new mapping for each merge
    metadata: Mapping[str, Any] = Field(default_factory=lambda: MappingProxyType({}))

    @field_validator("metadata", mode="after")
    @classmethod
    def freeze_metadata(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("metadata")
    def serialize_metadata(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    @property
    def duration_ms(self) -> int | None:
        """Time between start and completion, if both happened."""
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.ERROR)


# --- Events ---


class EstimateEvent(BaseModel):
    """Updated prediction of the run's total duration."""

    type: Literal["estimate"]
    seconds: float


class StepEvent(BaseModel):
    """Status transition reported for one step."""

    model_config = ConfigDict(populate_by_name=True)

    step_id: str = Field(alias="stepId")
    status: Literal["active", "completed", "error"]
    detail: str | None = None
    metadata: dict[str, Any] | None = None


ProgressEvent = Union[EstimateEvent, StepEvent]


def parse_event(payload: str | bytes | Mapping[str, Any]) -> ProgressEvent:
    """Parse a raw stream message into a typed event.

    Args:
        payload: JSON text or an already decoded mapping

    Returns:
        An EstimateEvent or StepEvent

    Raises:
        MalformedEventError: If the payload matches neither event shape
    """
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedEventError(f"Event is not valid JSON: {e}") from e
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise MalformedEventError(f"Event must be a JSON object, got {type(data).__name__}")

    try:
        if data.get("type") == "estimate":
            return EstimateEvent.model_validate(data)
        return StepEvent.model_validate(data)
    except ValidationError as e:
        raise MalformedEventError(f"Unrecognized event: {e.errors(include_url=False)}") from e
