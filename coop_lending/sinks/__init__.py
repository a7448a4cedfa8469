"""Output sinks for lifecycle events and entity exports."""

from typing import Protocol, Any

from coop_lending.sinks.console import ConsoleSink
from coop_lending.sinks.json_file import JsonFileSink
from coop_lending.sinks.kafka import KafkaSink


class Sink(Protocol):
    """Anything that accepts batches of records per topic."""

    def write_batch(self, topic: str, records: list[Any]) -> None: ...

    def close(self) -> None: ...


__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink", "Sink"]
