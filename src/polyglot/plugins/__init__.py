"""Plugin hooks run around every non-streaming request."""

from polyglot.plugins.base import Plugin
from polyglot.plugins.logger import LoggerPlugin

__all__ = ["LoggerPlugin", "Plugin"]
