"""Tests for lifecycle event publishing."""

import json
import tempfile
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from coop_lending.config import CoopLendingConfig, EventConfig
from coop_lending.events import EventPublisher, build_sinks
from coop_lending.exceptions import ConfigurationError, SinkError
from coop_lending.logging import JsonFormatter
from coop_lending.models.lending import LoanStatus
from coop_lending.sinks import ConsoleSink, JsonFileSink


class TestEventPublisher:
    """Tests for EventPublisher."""

    def test_publish_builds_envelope(self) -> None:
        publisher = EventPublisher(keep_history=True)

        event = publisher.publish(
            "loan.approved",
            subject="loan-001",
            data={"amount": Decimal("50000"), "status": LoanStatus.APPROVED},
            metadata={"cooperative_id": "coop-001"},
        )

        assert event.event_type == "loan.approved"
        assert event.source == "coop-lending"
        assert event.subject == "loan-001"
        assert event.data == {"amount": "50000", "status": "approved"}
        assert publisher.published == [event]

    def test_event_ids_are_unique(self) -> None:
        publisher = EventPublisher(keep_history=True)

        first = publisher.publish("loan.submitted", "loan-001", {})
        second = publisher.publish("loan.submitted", "loan-001", {})

        assert first.event_id != second.event_id

    def test_routes_to_entity_topic(self) -> None:
        """Test that events go to the topic of their entity."""
        sink = MagicMock()
        publisher = EventPublisher([sink], EventConfig(topic_prefix="acme"))

        event = publisher.publish("plan.overdue", "plan-001", {})

        sink.write_batch.assert_called_once_with("acme.plan", [event])

    def test_sink_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that one failing sink does not stop the others."""
        failing = MagicMock()
        failing.write_batch.side_effect = SinkError("broker down")
        healthy = MagicMock()
        publisher = EventPublisher([failing, healthy], keep_history=True)

        with caplog.at_level("ERROR", logger="coop_lending.events"):
            publisher.publish("loan.completed", "loan-001", {})

        healthy.write_batch.assert_called_once()
        assert "loan.completed" in caplog.text
        assert len(publisher.published) == 1
        assert publisher.counts["loan.completed"] == 1

    def test_events_of(self) -> None:
        publisher = EventPublisher(keep_history=True)
        publisher.publish("loan.submitted", "loan-001", {})
        publisher.publish("loan.approved", "loan-001", {})

        assert [e.event_type for e in publisher.events_of("loan.approved")] == ["loan.approved"]

    def test_history_is_off_by_default(self) -> None:
        """Test that a default publisher only counts what it publishes."""
        publisher = EventPublisher()
        for _ in range(3):
            publisher.publish("loan.submitted", "loan-001", {})
        publisher.publish("loan.rejected", "loan-001", {})

        assert publisher.published == []
        assert publisher.events_of("loan.submitted") == []
        assert publisher.counts == {"loan.submitted": 3, "loan.rejected": 1}
        assert publisher.total_published == 4

    def test_publish_log_carries_event_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that JSON logs of a publish include the event id and subject."""
        with caplog.at_level("DEBUG", logger="coop_lending.events"):
            event = EventPublisher().publish("loan.approved", "loan-001", {})

        [record] = [r for r in caplog.records if r.name == "coop_lending.events"]
        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "Publishing loan.approved for loan-001"
        assert data["event_id"] == event.event_id
        assert data["subject"] == "loan-001"

    def test_close_closes_sinks(self) -> None:
        sink = MagicMock()

        EventPublisher([sink]).close()

        sink.close.assert_called_once()


class TestBuildSinks:
    """Tests for sink construction from configuration."""

    def test_console_and_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = CoopLendingConfig()
            config.events.sinks = ["console", "json"]
            config.output.json_output_dir = tmpdir

            sinks = build_sinks(config)

            assert isinstance(sinks[0], ConsoleSink)
            assert isinstance(sinks[1], JsonFileSink)

    @patch("coop_lending.sinks.kafka.Producer")
    def test_kafka(self, mock_producer_class: MagicMock) -> None:
        config = CoopLendingConfig()
        config.events.sinks = ["kafka"]
        config.kafka.bootstrap_servers = "kafka:9092"

        [sink] = build_sinks(config)

        assert sink.config.bootstrap_servers == "kafka:9092"

    def test_unknown_sink(self) -> None:
        config = CoopLendingConfig()
        config.events.sinks = ["postgres"]

        with pytest.raises(ConfigurationError, match="postgres"):
            build_sinks(config)
