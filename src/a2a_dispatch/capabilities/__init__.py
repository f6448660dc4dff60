"""Local capability invokers."""

from a2a_dispatch.capabilities.invoker import (
    CapabilityInvoker,
    CapabilityNotFoundError,
    StaticCapabilityInvoker,
)


__all__ = [
    'CapabilityInvoker',
    'CapabilityNotFoundError',
    'StaticCapabilityInvoker',
]
