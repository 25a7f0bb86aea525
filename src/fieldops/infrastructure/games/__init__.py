"""Games catalogue HTTP integration."""

from .client import GamesApiClient

__all__ = ["GamesApiClient"]
