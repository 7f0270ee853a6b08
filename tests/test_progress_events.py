"""Tests for progress event parsing."""

import pytest

from research_console.exceptions import MalformedEventError
from research_console.progress import EstimateEvent, StepEvent, parse_event


class TestParseEvent:
    """Tests for parse_event."""

    def test_estimate_event(self):
        event = parse_event('{"type": "estimate", "seconds": 30}')
        assert event == EstimateEvent(type="estimate", seconds=30)

    def test_step_event(self):
        event = parse_event('{"stepId": "openalex", "status": "completed", "metadata": {"papers": 41}}')
        assert isinstance(event, StepEvent)
        assert event.step_id == "openalex"
        assert event.status == "completed"
        assert event.metadata == {"papers": 41}
        assert event.detail is None

    def test_step_event_from_mapping(self):
        event = parse_event({"stepId": "llm", "status": "error", "detail": "rate limited"})
        assert isinstance(event, StepEvent)
        assert event.detail == "rate limited"

    def test_bytes_payload(self):
        event = parse_event(b'{"stepId": "intent", "status": "active"}')
        assert isinstance(event, StepEvent)

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "",
            "[1, 2, 3]",
            '"estimate"',
            '{"type": "estimate"}',
            '{"type": "estimate", "seconds": "soon"}',
            '{"stepId": "a"}',
            '{"stepId": "a", "status": "paused"}',
            '{"status": "active"}',
            '{"stepId": "a", "status": "completed", "metadata": [1]}',
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedEventError):
            parse_event(payload)
