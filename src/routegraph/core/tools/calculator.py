"""Calculator plugin.

Expressions are evaluated with builtins removed; only the public names of
`math` (`sqrt`, `pi`, ...) plus abs/round/min/max are in scope, and any
double underscore is refused outright.
"""

import math

from mirascope.core import BaseTool
from pydantic import Field

from routegraph.core.logging import LogComponent, get_logger

logger = get_logger(LogComponent.TOOLS)

_MATH_NAMES = {
    name: getattr(math, name) for name in dir(math) if not name.startswith("_")
}
_MATH_NAMES.update({"abs": abs, "round": round, "min": min, "max": max})


class CalculatorTool(BaseTool):
    """Perform mathematical calculations.

    Attributes:
        expression: The mathematical expression to evaluate

    Example:
        ```python
        tool = CalculatorTool(expression="2 + 2")
        result = tool.call()  # Returns "4"

        tool = CalculatorTool(expression="sqrt(16) * 3")
        result = tool.call()  # Returns "12.0"
        ```
    """

    expression: str = Field(..., description="Arithmetic expression, e.g. '25 * 4' or 'sqrt(16)'")

    def call(self) -> str:
        """Result as text, or `Error: ...` so the model can read the failure."""
        if "__" in self.expression:
            return "Error: invalid expression"
        try:
            result = eval(self.expression, {"__builtins__": {}}, dict(_MATH_NAMES))
            return str(result)
        except Exception as e:
            logger.debug(f"Calculator failed on {self.expression!r}: {e}")
            return f"Error: {e}"
