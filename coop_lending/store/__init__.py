"""In-memory data store for lending aggregates."""

from coop_lending.store.lending import LendingDataStore

__all__ = ["LendingDataStore"]
