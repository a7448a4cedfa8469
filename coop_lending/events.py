"""Lifecycle event publishing."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from datetime import datetime
from typing import Any

from coop_lending.config import CoopLendingConfig, EventConfig
from coop_lending.exceptions import ConfigurationError, SinkError
from coop_lending.models import Event
from coop_lending.sinks import ConsoleSink, JsonFileSink, KafkaSink, Sink
from coop_lending.sinks.kafka import ProducerConfig
from coop_lending.sinks.serialization import serialize_value

logger = logging.getLogger(__name__)

SOURCE = "coop-lending"


class EventPublisher:
    """Wrap lifecycle changes in ``Event`` envelopes and fan them out.

    Events go to the topic of their entity (``loan.approved`` goes to
    ``<prefix>.loan``). Events are published after the state change is
    stored; a failing sink is logged and does not undo the change.

    Only per-type counts are kept by default. Pass ``keep_history=True``
    to also retain every published event in ``published``.
    """

    def __init__(
        self,
        sinks: list[Sink] | None = None,
        config: EventConfig | None = None,
        source: str = SOURCE,
        keep_history: bool = False,
    ) -> None:
        self.sinks = list(sinks or [])
        self.config = config or EventConfig()
        self.source = source
        self.keep_history = keep_history
        self.published: list[Event] = []
        self.counts: Counter[str] = Counter()
        self._history_lock = threading.Lock()

    def publish(
        self,
        event_type: str,
        subject: str,
        data: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> Event:
        """Build an event and write it to every sink."""
        event = Event(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            event_time=datetime.now(),
            source=self.source,
            subject=subject,
            data={k: serialize_value(v) for k, v in data.items()},
            metadata=metadata or {},
        )
        with self._history_lock:
            self.counts[event_type] += 1
            if self.keep_history:
                self.published.append(event)
        logger.debug(
            "Publishing %s for %s",
            event_type, subject,
            extra={"extra": {"event_id": event.event_id, "event_type": event_type, "subject": subject}},
        )

        topic = self.config.topic(event_type.split(".", 1)[0])
        for sink in self.sinks:
            try:
                sink.write_batch(topic, [event])
            except SinkError:
                logger.exception("Sink %s failed for %s", type(sink).__name__, event_type)
        return event

    @property
    def total_published(self) -> int:
        return sum(self.counts.values())

    def events_of(self, event_type: str) -> list[Event]:
        """Retained events of ``event_type``; empty unless ``keep_history``."""
        return [e for e in self.published if e.event_type == event_type]

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()


def build_sinks(config: CoopLendingConfig) -> list[Sink]:
    """Instantiate the sinks named in ``config.events.sinks``."""
    sinks: list[Sink] = []
    for name in config.events.sinks:
        if name == "console":
            sinks.append(ConsoleSink(pretty=config.output.pretty_json))
        elif name == "json":
            sinks.append(JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json))
        elif name == "kafka":
            sinks.append(KafkaSink(ProducerConfig.from_kafka_config(config.kafka)))
        else:
            raise ConfigurationError(f"Unknown sink: {name!r}")
    return sinks
