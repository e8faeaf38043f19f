"""Logging for routegraph.

Every module logs through a component logger (see `LogComponent`), so
applications can tune the graph, its nodes, the tool layer and the
checkpointer separately:

    configure_logging(
        default_level=LogLevel.INFO,
        component_levels={LogComponent.NODES: LogLevel.DEBUG},
    )

Two extra levels sit between INFO and WARNING: AGENT for model output and
TOOL for tool calls. VERBOSE sits below INFO for step-by-step chatter.
Nothing here touches the root logger until `configure_logging` is called.
"""

import logging
import os
import sys
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field


class Colors:
    """ANSI escape codes used by the pretty console handler."""
    HEADER = '\033[95m'
    INFO = '\033[94m'
    SUCCESS = '\033[92m'
    WARNING = '\033[93m'
    ERROR = '\033[91m'
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'


class LogComponent(str, Enum):
    """Logger names, one per package area."""
    AGENT = "routegraph.core.agent"
    GRAPH = "routegraph.core.graph"
    NODES = "routegraph.core.graph.nodes"
    CHECKPOINT = "routegraph.core.graph.checkpoint"
    TOOLS = "routegraph.core.tools"
    REGISTRY = "routegraph.core.tools.registry"


class LogLevel(IntEnum):
    """Standard levels plus AGENT and TOOL."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
    AGENT = 25
    TOOL = 26


class VerbosityLevel(IntEnum):
    """Levels accepted by `RouteLoggingConfig`."""
    DEBUG = logging.DEBUG
    VERBOSE = 15
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


for _level in (LogLevel.AGENT, LogLevel.TOOL, VerbosityLevel.VERBOSE):
    logging.addLevelName(_level, _level.name)

# levelname -> (color, symbol)
LEVEL_STYLES: Dict[str, tuple] = {
    'DEBUG': (Colors.DIM, '🔍'),
    'VERBOSE': (Colors.DIM, '·'),
    'INFO': (Colors.INFO, 'ℹ️'),
    'AGENT': (Colors.SUCCESS, '🤖'),
    'TOOL': (Colors.HEADER, '🔧'),
    'WARNING': (Colors.WARNING, '⚠️'),
    'ERROR': (Colors.ERROR, '❌'),
    'CRITICAL': (Colors.ERROR + Colors.BOLD, '🚨'),
}

PLAIN_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"

PRETTY_FORMAT = (
    f"{Colors.DIM}%(asctime)s{Colors.RESET} │ "
    "%(colored_level)-40s │ "
    f"{Colors.DIM}%(component)-10s{Colors.RESET} │ "
    "%(message)s"
)

DEFAULT_COMPONENT_LEVELS: Dict[LogComponent, LogLevel] = {
    LogComponent.AGENT: LogLevel.AGENT,
    LogComponent.TOOLS: LogLevel.TOOL,
    LogComponent.GRAPH: LogLevel.INFO,
    LogComponent.NODES: LogLevel.INFO,
}


def _component_of(logger_name: str) -> str:
    """Short tag for a logger name, e.g. 'registry' or 'graph'."""
    if logger_name.startswith("routegraph."):
        return logger_name.rsplit(".", 1)[-1]
    return logger_name


class PrettyFormatter(logging.Formatter):
    """Adds `colored_level` and `component` to records before formatting.

    Warnings and errors are followed by a dim rule so they stand out in a
    long run transcript.
    """

    def format(self, record):
        color, symbol = LEVEL_STYLES.get(record.levelname, (Colors.RESET, '•'))
        record.colored_level = f"{color}{symbol} {record.levelname}{Colors.RESET}"
        record.component = _component_of(record.name)
        text = super().format(record)
        if record.levelno >= logging.WARNING:
            text += f"\n{Colors.DIM}{'─' * 80}{Colors.RESET}"
        return text


class PrettyLogHandler(logging.StreamHandler):
    """Console handler with short timestamps, writing to stdout by default."""

    def __init__(self, stream=None):
        super().__init__(stream or sys.stdout)

    def emit(self, record):
        try:
            record.asctime = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
            self.stream.write(self.format(record) + self.terminator)
            if record.levelno >= logging.WARNING:
                self.stream.write(self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


class RouteLoggingConfig(BaseModel):
    """How an executor reports node transitions."""
    level: VerbosityLevel = Field(default=VerbosityLevel.INFO)
    show_node_transitions: bool = Field(default=True)


def level_from_env(var: str = "ROUTEGRAPH_LOG_LEVEL", default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Read a level name such as ``DEBUG`` or ``tool`` from the environment."""
    raw = os.environ.get(var, "").strip().upper()
    if not raw:
        return default
    try:
        return LogLevel[raw]
    except KeyError:
        return default


def configure_logging(
    default_level: Optional[LogLevel] = None,
    component_levels: Optional[Mapping[LogComponent, LogLevel]] = None,
    pretty: bool = True,
    log_file: Optional[str] = None
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    Args:
        default_level: Root level; defaults to `ROUTEGRAPH_LOG_LEVEL` or INFO
        component_levels: Per-component overrides; defaults to
            `DEFAULT_COMPONENT_LEVELS`
        pretty: Colored console output when True, plain lines otherwise
        log_file: Also append plain lines to this file

    Existing root handlers are removed, so call this once from an
    application entry point, never from library code.
    """
    if default_level is None:
        default_level = level_from_env()

    if pretty:
        console = PrettyLogHandler()
        console.setFormatter(PrettyFormatter(PRETTY_FORMAT))
    else:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers.append(file_handler)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(int(default_level))

    for component, level in (component_levels or DEFAULT_COMPONENT_LEVELS).items():
        logging.getLogger(component.value).setLevel(int(level))


def get_logger(component: Union[LogComponent, str]) -> logging.Logger:
    """Component logger with `.agent(msg)` and `.tool(msg)` shortcuts."""
    name = component.value if isinstance(component, LogComponent) else component
    logger = logging.getLogger(name)
    logger.agent = lambda msg: logger.log(LogLevel.AGENT, f"{Colors.SUCCESS}{msg}{Colors.RESET}")
    logger.tool = lambda msg: logger.log(LogLevel.TOOL, f"{Colors.HEADER}{msg}{Colors.RESET}")
    return logger


def log_verbose(logger: logging.Logger, message: str) -> None:
    if logger.isEnabledFor(VerbosityLevel.VERBOSE):
        logger.log(VerbosityLevel.VERBOSE, message)


def log_state(logger: logging.Logger, state: Mapping[str, Any], prefix: str = "") -> None:
    """Dump channels at DEBUG; lists are summarized by length."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for key, value in state.items():
        if isinstance(value, Mapping):
            logger.debug(f"{prefix}{key}:")
            log_state(logger, value, prefix + "  ")
        elif isinstance(value, list):
            logger.debug(f"{prefix}{key}: [{len(value)} item(s)]")
        else:
            logger.debug(f"{prefix}{key}: {value}")
