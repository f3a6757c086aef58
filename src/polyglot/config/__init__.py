"""Configuration management for Polyglot."""

from polyglot.config.settings import PolyglotSettings, ProviderSettings, get_settings

__all__ = ["PolyglotSettings", "ProviderSettings", "get_settings"]
