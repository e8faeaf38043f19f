"""Tools module for routegraph.

The plugin registry lives in `routegraph.core.tools.registry` and is
re-exported from the top-level `routegraph` package.
"""

from routegraph.core.tools.capability import (
    Capability,
    FunctionCapability,
    ToolClassCapability,
    invoke_capability,
)
from routegraph.core.tools.calculator import CalculatorTool
from routegraph.core.tools.clock import CurrentTimeTool

__all__ = [
    'Capability',
    'FunctionCapability',
    'ToolClassCapability',
    'invoke_capability',
    'CalculatorTool',
    'CurrentTimeTool',
]
