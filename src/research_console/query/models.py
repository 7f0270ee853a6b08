"""Data models for query composition and submission."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_SOURCES: tuple[str, ...] = ("openalex", "pubmed")
DEFAULT_LLMS: tuple[str, ...] = ("claude",)
DEFAULT_MAX_RESULTS = 20


class SearchDepth(str, Enum):
    """How thoroughly each source is searched."""

    QUICK = "quick"
    STANDARD = "standard"
    DEEP = "deep"


def unique_ids(ids) -> tuple[str, ...]:
    """Drop duplicate identifiers, keeping the first occurrence of each."""
    return tuple(dict.fromkeys(ids))


class QueryOptions(BaseModel):
    """Search options. Serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    search_depth: SearchDepth = SearchDepth.STANDARD
    max_results: int = DEFAULT_MAX_RESULTS
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    open_access_only: bool = False


class QueryConfiguration(BaseModel):
    """The user's in-progress query.

    ``sources`` and ``llms`` are ordered but behave as sets: they never hold
    duplicates.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    query: str = ""
    sources: tuple[str, ...] = DEFAULT_SOURCES
    llms: tuple[str, ...] = DEFAULT_LLMS
    options: QueryOptions = Field(default_factory=QueryOptions)

    @field_validator("sources", "llms")
    @classmethod
    def _dedupe(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return unique_ids(value)


class QuerySubmission(BaseModel):
    """Validated payload for launching a query run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    query: str = Field(min_length=10, max_length=500)
    sources: list[str] = Field(min_length=1)
    llms: list[str] = Field(min_length=1)
    search_depth: SearchDepth
    max_results: int = Field(ge=10, le=100)
    open_access_only: bool = False
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    project_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_date_range(self) -> "QuerySubmission":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("Start date must be before end date")
        return self

    @classmethod
    def from_configuration(cls, config: QueryConfiguration, project_id: str | None = None) -> "QuerySubmission":
        """Build a submission from the stored configuration, validating it."""
        options = config.options
        return cls(
            query=config.query.strip(),
            sources=list(config.sources),
            llms=list(config.llms),
            search_depth=options.search_depth,
            max_results=options.max_results,
            open_access_only=options.open_access_only,
            date_from=options.date_from or None,
            date_to=options.date_to or None,
            project_id=project_id,
        )


class ExecuteAck(BaseModel):
    """Response of the execute endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query_id: str
    status: str = "queued"
    message: str | None = None
