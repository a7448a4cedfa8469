"""JSON Lines file sink for events and entity exports."""

import json
import logging
from pathlib import Path
from typing import Any

from coop_lending.exceptions import SinkError
from coop_lending.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Append records to one ``.jsonl`` file per topic."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write files into.
        pretty : bool
            Indent each record. Pretty output is no longer one record per
            line, so only use it for inspection.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        """File a topic is written to (dots become underscores)."""
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records to the topic's file."""
        file_path = self.path_for(topic)

        try:
            with open(file_path, "a", encoding="utf-8") as f:
                for record in records:
                    data = to_dict(record)
                    if self.pretty:
                        f.write(json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n")
                    else:
                        f.write(json.dumps(data, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            raise SinkError(f"Failed to write {file_path}: {exc}") from exc

        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def close(self) -> None:
        """Log a summary of what was written."""
        logger.info("JSON files written to: %s", self.output_dir)
        for topic, count in self._counts.items():
            logger.info("  %s: %d records", topic, count)
