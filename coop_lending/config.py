"""Configuration management for coop-lending."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from coop_lending.exceptions import ConfigurationError


@dataclass
class LendingConfig:
    """Business defaults for the lending engine."""

    currency: str = "NGN"
    due_soon_days: int = 7
    renewal_lookahead_days: int = 3
    term_option_step_months: int = 6
    reference_prefix: str = "CON"
    reference_max_attempts: int = 10

    def __post_init__(self) -> None:
        if self.term_option_step_months < 1:
            raise ConfigurationError("term_option_step_months must be at least 1")
        if self.reference_max_attempts < 1:
            raise ConfigurationError("reference_max_attempts must be at least 1")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class EventConfig:
    """Lifecycle event publishing configuration."""

    topic_prefix: str = "coop"
    sinks: list[str] = field(default_factory=lambda: ["console"])

    def topic(self, entity: str) -> str:
        """Topic name for an entity stream (e.g. ``coop.loans``)."""
        return f"{self.topic_prefix}.{entity}"


@dataclass
class ScenarioConfig:
    """Configuration for scenario execution."""

    name: str
    num_members: int = 50
    loan_penetration: float = 0.40
    approval_rate: float = 0.80
    repayment_rate: float = 0.60
    labels: dict[str, Any] = field(default_factory=dict)


@dataclass
class CoopLendingConfig:
    """Main configuration for coop-lending."""

    lending: LendingConfig = field(default_factory=LendingConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    events: EventConfig = field(default_factory=EventConfig)
    scenario: ScenarioConfig | None = None
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CoopLendingConfig":
        """Create config from environment variables."""
        import os

        try:
            lending = LendingConfig(
                currency=os.getenv("COOP_CURRENCY", "NGN"),
                due_soon_days=int(os.getenv("COOP_DUE_SOON_DAYS", "7")),
                renewal_lookahead_days=int(os.getenv("COOP_RENEWAL_LOOKAHEAD_DAYS", "3")),
                reference_prefix=os.getenv("COOP_REFERENCE_PREFIX", "CON"),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid lending configuration: {exc}") from exc

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        sinks_str = os.getenv("COOP_EVENT_SINKS", "console")
        events = EventConfig(
            topic_prefix=os.getenv("COOP_TOPIC_PREFIX", "coop"),
            sinks=[s.strip() for s in sinks_str.split(",") if s.strip()],
        )

        return cls(
            lending=lending,
            kafka=kafka,
            output=output,
            events=events,
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
