"""Query composition: configuration models and the persisted configuration store."""

from .models import ExecuteAck, QueryConfiguration, QueryOptions, QuerySubmission, SearchDepth
from .store import STORAGE_KEY, QueryStore

__all__ = [
    "ExecuteAck",
    "QueryConfiguration",
    "QueryOptions",
    "QueryStore",
    "QuerySubmission",
    "STORAGE_KEY",
    "SearchDepth",
]
