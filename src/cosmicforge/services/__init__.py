"""Services for Cosmic Forge."""

from cosmicforge.services.entity import EntityDataService

__all__ = ["EntityDataService"]
