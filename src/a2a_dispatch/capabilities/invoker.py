import inspect
import json
import logging

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any


logger = logging.getLogger(__name__)

CapabilityFunc = Callable[..., Any | Awaitable[Any]]


class CapabilityNotFoundError(LookupError):
    """Raised when no capability with the requested name is registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Capability '{name}' not found")


class CapabilityInvoker(ABC):
    """Boundary to local tool execution.

    Implementations expose a set of named capabilities and invoke them with
    an argument mapping, returning the textual result.
    """

    @abstractmethod
    def names(self) -> list[str]:
        """Returns the names of all registered capabilities."""

    def has(self, name: str) -> bool:
        return name in self.names()

    @abstractmethod
    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        """Invokes capability `name` with `arguments`.

        Raises:
            CapabilityNotFoundError: If `name` is not registered.
        """


def render_result(result: Any) -> str:
    """Renders a capability return value as text."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, default=str)


class StaticCapabilityInvoker(CapabilityInvoker):
    """Invoker backed by Python callables registered by name."""

    def __init__(self, capabilities: dict[str, CapabilityFunc] | None = None):
        self._capabilities: dict[str, CapabilityFunc] = dict(
            capabilities or {}
        )

    def register(self, name: str, func: CapabilityFunc) -> None:
        logger.debug(f'Registering capability {name}')
        self._capabilities[name] = func

    def names(self) -> list[str]:
        return list(self._capabilities)

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        func = self._capabilities.get(name)
        if func is None:
            raise CapabilityNotFoundError(name)
        result = func(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return render_result(result)
