"""Tests for query configuration and submission models."""

from datetime import date

import pytest
from pydantic import ValidationError

from research_console.query import QueryConfiguration, QueryOptions, QuerySubmission, SearchDepth


def make_config(**overrides) -> QueryConfiguration:
    fields = {
        "query": "Biomarkers predicting response to PD-1 blockade",
        "sources": ("openalex", "pubmed"),
        "llms": ("claude",),
        "options": QueryOptions(),
    }
    fields.update(overrides)
    return QueryConfiguration(**fields)


class TestQueryConfiguration:
    """Tests for QueryConfiguration."""

    def test_duplicates_removed_on_validation(self):
        config = QueryConfiguration(sources=["pubmed", "pubmed"], llms=["claude", "gpt4", "claude"])
        assert config.sources == ("pubmed",)
        assert config.llms == ("claude", "gpt4")

    def test_camel_case_dump(self):
        data = QueryConfiguration().model_dump(mode="json", by_alias=True)
        assert data["options"] == {
            "searchDepth": "standard",
            "maxResults": 20,
            "dateFrom": None,
            "dateTo": None,
            "openAccessOnly": False,
        }

    def test_frozen(self):
        with pytest.raises(ValidationError):
            QueryConfiguration().query = "changed"


class TestQuerySubmission:
    """Tests for submission validation."""

    def test_valid_configuration(self):
        submission = QuerySubmission.from_configuration(make_config(), project_id="proj-1")
        assert submission.search_depth == SearchDepth.STANDARD
        assert submission.max_results == 20
        assert submission.project_id == "proj-1"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"query": "too short"},
            {"query": "x" * 501},
            {"sources": ()},
            {"llms": ()},
            {"options": QueryOptions(max_results=5)},
            {"options": QueryOptions(max_results=150)},
            {"options": QueryOptions(date_from="2024-06-01", date_to="2024-01-01")},
            {"options": QueryOptions(date_from="yesterday")},
        ],
    )
    def test_invalid_configuration(self, overrides):
        with pytest.raises(ValidationError):
            QuerySubmission.from_configuration(make_config(**overrides))

    def test_date_range(self):
        options = QueryOptions(date_from="2023-01-01", date_to="2023-12-31")
        submission = QuerySubmission.from_configuration(make_config(options=options))
        assert submission.date_from == date(2023, 1, 1)
        assert submission.date_to == date(2023, 12, 31)

    def test_open_ended_date_range(self):
        submission = QuerySubmission.from_configuration(make_config(options=QueryOptions(date_to="2020-01-01")))
        assert submission.date_from is None

    def test_query_is_stripped(self):
        submission = QuerySubmission.from_configuration(make_config(query="   CRISPR off-target effects   "))
        assert submission.query == "CRISPR off-target effects"
