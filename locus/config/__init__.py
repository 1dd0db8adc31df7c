"""
Configuration Management.

Configuration sources (in order of precedence):
1. Environment variables
2. .env file
3. Default values

API keys and the Supabase key are loaded from environment variables and
never committed to source control.

Example:
    from locus.config import get_settings

    settings = get_settings()
    ttl = settings.weather_ttl_seconds
"""

from locus.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
