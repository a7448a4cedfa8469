"""Domain models for cooperative lending."""

from coop_lending.models.base import Event

__all__ = ["Event"]
