"""Health checks for external dependencies."""

from .checks import DatabaseHealthCheck, GamesApiHealthCheck, RedisHealthCheck

__all__ = ["DatabaseHealthCheck", "GamesApiHealthCheck", "RedisHealthCheck"]
