"""Tests for cost and duration estimation."""

import pytest

from research_console.estimator import (
    MINIMUM_COST,
    QueryEstimate,
    calculate_query_cost,
    cost_tier,
    estimate_query,
    estimate_query_duration,
    format_currency,
)
from research_console.query.models import QueryConfiguration, QueryOptions, SearchDepth


class TestCalculateQueryCost:
    """Tests for calculate_query_cost."""

    def test_known_sources_and_model(self):
        """Base costs are summed from the tables."""
        assert calculate_query_cost(["openalex", "pubmed"], ["claude"], "standard", 20) == 2.05

    def test_empty_selection_hits_minimum(self):
        """An empty selection is floored at the minimum cost."""
        assert calculate_query_cost([], [], "quick", 20) == 0.5
        assert MINIMUM_COST == 0.5

    def test_unknown_ids_use_defaults(self):
        """Unknown sources cost 0.10 and unknown models 1.00."""
        assert calculate_query_cost(["arxiv"], ["mystery-model"], SearchDepth.STANDARD) == 1.1

    def test_free_model_still_floored(self):
        """A free local model with a cheap source is floored."""
        assert calculate_query_cost(["document-vault"], ["ollama"], "standard") == 0.5

    def test_depth_multiplier(self):
        """Deep search multiplies by 2.6, quick by 0.5."""
        assert calculate_query_cost(["google-patents"], ["gpt4"], "deep") == 8.97
        assert calculate_query_cost(["google-patents"], ["gpt4"], "quick") == 1.73

    def test_results_multiplier_scales_above_default(self):
        """Results above 20 scale linearly."""
        assert calculate_query_cost(["openalex", "pubmed"], ["claude"], "standard", 40) == 4.1

    def test_no_discount_below_default_results(self):
        """Fewer results than the default do not lower the cost."""
        assert calculate_query_cost(["openalex", "pubmed"], ["claude"], "standard", 10) == 2.05

    def test_default_max_results(self):
        """max_results defaults to 20."""
        assert calculate_query_cost(["pubmed"], ["gemini"], "standard") == 1.3

    def test_accepts_any_iterable(self):
        """Sets and generators work as selections."""
        assert calculate_query_cost({"pubmed"}, (m for m in ["gemini"]), "standard") == 1.3

    def test_unknown_depth_raises(self):
        """Depth is an enum; an unknown value is rejected."""
        with pytest.raises(ValueError):
            calculate_query_cost(["pubmed"], ["claude"], "exhaustive")


class TestEstimateQueryDuration:
    """Tests for estimate_query_duration."""

    def test_deep_search(self):
        """45 + 7.5 + 6 rounds to 59."""
        assert estimate_query_duration("deep", 3, 2) == 59

    def test_adjustments_are_capped(self):
        """Source adjustment caps at 12, model adjustment at 10."""
        assert estimate_query_duration("standard", 10, 10) == 40

    def test_half_rounds_up(self):
        """8 + 2.5 rounds to 11, not to the even 10."""
        assert estimate_query_duration(SearchDepth.QUICK, 1, 0) == 11

    def test_nothing_selected(self):
        """The base time remains with no selections."""
        assert estimate_query_duration("standard", 0, 0) == 18


class TestDisplayHelpers:
    """Tests for cost tier and currency formatting."""

    @pytest.mark.parametrize(
        ("cost", "tier"),
        [(0.5, "low"), (1.99, "low"), (2.0, "medium"), (4.99, "medium"), (5.0, "high"), (12.3, "high")],
    )
    def test_cost_tier(self, cost, tier):
        assert cost_tier(cost) == tier

    def test_format_currency(self):
        assert format_currency(2.05) == "$2.05"
        assert format_currency(0.5) == "$0.50"
        assert format_currency(1234.5) == "$1,234.50"

    def test_estimate_query_uses_configuration(self):
        """estimate_query combines both estimates for a configuration."""
        config = QueryConfiguration(
            sources=("openalex", "pubmed"),
            llms=("claude",),
            options=QueryOptions(search_depth=SearchDepth.STANDARD, max_results=20),
        )
        result = estimate_query(config)
        assert result == QueryEstimate(cost=2.05, duration_seconds=26)
        assert result.tier == "medium"
