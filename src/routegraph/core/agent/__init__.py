"""Agent module for routegraph."""

from routegraph.core.agent.plugin_agent import PluginAgent
from routegraph.core.logging import configure_logging, LogLevel, LogComponent

__all__ = [
    'PluginAgent',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
