"""Cost and duration estimates for a query configuration.

The estimates are shown before submission and are not binding on the actual
run. Both functions are pure and cheap (linear in the number of selected
sources and models), so callers recompute them on every configuration change.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Literal

from .query.models import DEFAULT_MAX_RESULTS, QueryConfiguration, SearchDepth

SOURCE_BASE_COST: dict[str, float] = {
    "openalex": 0.15,
    "google-patents": 0.25,
    "pubmed": 0.10,
    "document-vault": 0.05,
}

LLM_BASE_COST: dict[str, float] = {
    "claude": 1.80,
    "gpt4": 3.20,
    "gemini": 1.20,
    "ollama": 0.0,
}

DEFAULT_SOURCE_COST = 0.10
DEFAULT_LLM_COST = 1.0

DEPTH_MULTIPLIER: dict[SearchDepth, float] = {
    SearchDepth.QUICK: 0.5,
    SearchDepth.STANDARD: 1.0,
    SearchDepth.DEEP: 2.6,
}

DEPTH_BASE_SECONDS: dict[SearchDepth, int] = {
    SearchDepth.QUICK: 8,
    SearchDepth.STANDARD: 18,
    SearchDepth.DEEP: 45,
}

MINIMUM_COST = 0.50
MAX_SOURCE_ADJUSTMENT = 12.0
MAX_LLM_ADJUSTMENT = 10.0

CostTier = Literal["low", "medium", "high"]


def _round_half_up(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_query_cost(
    sources: Iterable[str],
    llms: Iterable[str],
    depth: SearchDepth | str,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> float:
    """Estimate the monetary cost of a query.

    Unknown source and model ids fall back to a default base cost instead of
    failing, so an unrecognized selection never blocks the estimate.

    Args:
        sources: Selected source ids
        llms: Selected model ids
        depth: Search depth
        max_results: Requested results per source; only values above the
            default scale the cost up

    Returns:
        Cost rounded half-up to cents, never below ``MINIMUM_COST``
    """
    depth_multiplier = DEPTH_MULTIPLIER[SearchDepth(depth)]

    source_cost = sum(SOURCE_BASE_COST.get(source, DEFAULT_SOURCE_COST) for source in sources)
    llm_cost = sum(LLM_BASE_COST.get(llm, DEFAULT_LLM_COST) for llm in llms)
    results_multiplier = max(1.0, max_results / DEFAULT_MAX_RESULTS)

    total = (source_cost + llm_cost) * depth_multiplier * results_multiplier
    return _round_half_up(max(MINIMUM_COST, total), 2)


def estimate_query_duration(depth: SearchDepth | str, sources_count: int, llm_count: int) -> int:
    """Estimate wall-clock duration of a query in whole seconds."""
    base = DEPTH_BASE_SECONDS[SearchDepth(depth)]
    source_adjustment = min(MAX_SOURCE_ADJUSTMENT, sources_count * 2.5)
    llm_adjustment = min(MAX_LLM_ADJUSTMENT, llm_count * 3)

    return math.floor(base + source_adjustment + llm_adjustment + 0.5)


def cost_tier(cost: float) -> CostTier:
    """Bucket a cost for display highlighting."""
    if cost < 2:
        return "low"
    if cost < 5:
        return "medium"
    return "high"


def format_currency(amount: float) -> str:
    """Format an amount as US dollars with two decimals, e.g. ``$1,234.50``."""
    rounded = _round_half_up(amount, 2)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


@dataclass(frozen=True)
class QueryEstimate:
    """Cost and duration projected for one configuration."""

    cost: float
    duration_seconds: int

    @property
    def tier(self) -> CostTier:
        return cost_tier(self.cost)


def estimate_query(config: QueryConfiguration) -> QueryEstimate:
    """Compute both estimates for a stored configuration."""
    options = config.options
    return QueryEstimate(
        cost=calculate_query_cost(config.sources, config.llms, options.search_depth, options.max_results),
        duration_seconds=estimate_query_duration(options.search_depth, len(config.sources), len(config.llms)),
    )
