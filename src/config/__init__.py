"""
Application configuration using Pydantic settings.

Configuration comes from environment variables (or a .env file) and
selects between the Snowflake store and the in-memory mock store.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
