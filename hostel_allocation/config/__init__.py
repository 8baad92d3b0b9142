"""
Configuration package: settings, database engine, logging and credential hashing.
"""

from hostel_allocation.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
