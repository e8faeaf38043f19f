"""Capability interface.

A capability is anything a node can call that may be slow and may fail:
model inference or a tool. The engine treats both the same way. Any
object with an `invoke(input)` method qualifies, sync or async; plain
callables are accepted too.

Adapters:
    FunctionCapability  - wrap a function (custom tools)
    ToolClassCapability - wrap a mirascope BaseTool subclass such as
                          CalculatorTool; arguments become tool fields

Example:
    ```python
    from routegraph.core.tools import CalculatorTool, ToolClassCapability

    calc = ToolClassCapability(CalculatorTool)
    result = await invoke_capability(calc, {"expression": "2 + 2"})  # "4"
    ```
"""

import inspect
import logging
from typing import Any, Callable, Optional, Protocol, Type, runtime_checkable

from mirascope.core import BaseTool
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from routegraph.core.errors import CapabilityError
from routegraph.core.logging import LogComponent

logger = logging.getLogger(LogComponent.TOOLS.value)


@runtime_checkable
class Capability(Protocol):
    """Contract for model and tool handles."""

    def invoke(self, input: Any) -> Any:
        ...


def capability_name(capability: Any) -> str:
    """Best-effort human-readable name for logs and error messages."""
    name = getattr(capability, "name", None)
    if isinstance(name, str) and name:
        return name
    if inspect.isclass(capability):
        return capability.__name__
    return getattr(capability, "__name__", type(capability).__name__)


async def _call_once(capability: Any, payload: Any) -> Any:
    if hasattr(capability, "invoke"):
        result = capability.invoke(payload)
    elif callable(capability):
        result = capability(payload)
    else:
        raise TypeError(f"{type(capability).__name__} is not a capability")
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_capability(
    capability: Any,
    payload: Any,
    attempts: int = 1,
    backoff_multiplier: float = 1.0,
    name: Optional[str] = None,
) -> Any:
    """Call a capability, retrying transient failures.

    Args:
        capability: Object with `invoke`, or a callable
        payload: Input passed through unchanged
        attempts: Total attempts before giving up
        backoff_multiplier: Multiplier for exponential wait between attempts
        name: Name used in logs and errors

    Returns:
        Whatever the capability returned

    Raises:
        CapabilityError: After the last failed attempt
    """
    name = name or capability_name(capability)
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=backoff_multiplier, max=10),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(f"Retrying capability '{name}' (attempt {attempt.retry_state.attempt_number}/{attempts})")
                result = await _call_once(capability, payload)
        return result
    except CapabilityError:
        raise
    except Exception as e:
        logger.error(f"Capability '{name}' failed: {e}")
        raise CapabilityError(name, e) from e


class FunctionCapability:
    """Wrap a plain function (sync or async) as a capability.

    Args:
        func: Function to call
        name: Tool name (defaults to the function name)
        description: Human-readable description (defaults to the docstring)
        unpack_arguments: Call `func(**input)` when the input is a dict
    """

    def __init__(
        self,
        func: Callable[..., Any],
        name: Optional[str] = None,
        description: Optional[str] = None,
        unpack_arguments: bool = True,
    ):
        self.func = func
        self.name = name or func.__name__
        self.description = description or (inspect.getdoc(func) or "").split("\n")[0]
        self.unpack_arguments = unpack_arguments

    async def invoke(self, input: Any) -> Any:
        if self.unpack_arguments and isinstance(input, dict):
            result = self.func(**input)
        elif input is None:
            result = self.func()
        else:
            result = self.func(input)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionCapability(name={self.name!r})"


class ToolClassCapability:
    """Wrap a mirascope BaseTool subclass as a capability.

    Each invocation builds a tool instance from the call arguments and runs
    its `call()` method.
    """

    def __init__(self, tool_cls: Type[BaseTool], name: Optional[str] = None, description: Optional[str] = None):
        if not (inspect.isclass(tool_cls) and issubclass(tool_cls, BaseTool)):
            raise TypeError(f"{tool_cls!r} is not a mirascope BaseTool subclass")
        self.tool_cls = tool_cls
        self.name = name or tool_cls._name()
        self.description = description or (inspect.getdoc(tool_cls) or "").split("\n")[0]

    async def invoke(self, input: Any) -> Any:
        arguments = input if isinstance(input, dict) else {}
        tool = self.tool_cls(**arguments)
        if inspect.iscoroutinefunction(tool.call):
            return await tool.call()
        return tool.call()

    def __repr__(self) -> str:
        return f"ToolClassCapability(tool={self.tool_cls.__name__})"
