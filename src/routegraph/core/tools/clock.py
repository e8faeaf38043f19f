"""Current date and time tool."""

from datetime import datetime
from typing import Optional

from mirascope.core import BaseTool
from pydantic import Field


class CurrentTimeTool(BaseTool):
    """Get the current date and time.

    Example:
        ```python
        CurrentTimeTool().call()                      # "2024-05-01 14:03:12"
        CurrentTimeTool(time_format="%A").call()      # "Wednesday"
        ```
    """

    time_format: Optional[str] = Field(
        default=None,
        description="Optional strftime format, e.g. '%Y-%m-%d'"
    )

    def call(self) -> str:
        now = datetime.now()
        if self.time_format:
            return now.strftime(self.time_format)
        return now.strftime("%Y-%m-%d %H:%M:%S")
