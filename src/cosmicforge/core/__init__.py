"""Core configuration and utilities for Cosmic Forge."""

from cosmicforge.core.config import settings
from cosmicforge.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
