"""Core modules for routegraph."""

from routegraph.core.logging import configure_logging, LogLevel, LogComponent, RouteLoggingConfig

__all__ = [
    'configure_logging',
    'LogLevel',
    'LogComponent',
    'RouteLoggingConfig'
]
