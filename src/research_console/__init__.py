"""Research query console: query composition, cost estimation and live progress tracking."""

from .api import CancelAck, ResearchApiClient
from .config import settings
from .estimator import QueryEstimate, calculate_query_cost, estimate_query, estimate_query_duration, format_currency
from .exceptions import ApiError, CancelRequestError, MalformedEventError, ResearchConsoleError, StreamConnectionError
from .progress import ProgressConsumer, ProgressStep, ProgressStore, StepDefinition, StepStatus
from .query import QueryConfiguration, QueryOptions, QueryStore, QuerySubmission, SearchDepth

__all__ = [
    "settings",
    "calculate_query_cost",
    "estimate_query_duration",
    "estimate_query",
    "format_currency",
    "QueryEstimate",
    "ProgressConsumer",
    "ProgressStep",
    "ProgressStore",
    "StepDefinition",
    "StepStatus",
    "QueryConfiguration",
    "QueryOptions",
    "QueryStore",
    "QuerySubmission",
    "SearchDepth",
    "ResearchApiClient",
    "CancelAck",
    "ResearchConsoleError",
    "MalformedEventError",
    "StreamConnectionError",
    "CancelRequestError",
    "ApiError",
]
