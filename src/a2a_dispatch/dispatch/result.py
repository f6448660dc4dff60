"""Tagged results produced by the classifier, router and remote client."""

from dataclasses import dataclass, field
from typing import Any

from a2a_dispatch.utils.errors import ErrorKind


@dataclass(frozen=True)
class Directive:
    """A structured instruction to invoke a named capability."""

    capability_name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FinalAnswer:
    """Reasoning-engine output that is returned to the caller as is."""

    text: str


ClassifiedOutput = Directive | FinalAnswer


@dataclass(frozen=True)
class CapabilityError:
    """A typed capability failure."""

    kind: ErrorKind
    detail: str


@dataclass(frozen=True)
class CapabilityResult:
    """Outcome of a capability invocation.

    Exactly one of `value` or `error` is meaningful, as reported by `ok`.
    Both render to text via `text`, which is what ends up in the task
    response.
    """

    value: str | None = None
    error: CapabilityError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        if self.error is not None:
            return self.error.detail
        return self.value or ''

    @classmethod
    def success(cls, value: str) -> 'CapabilityResult':
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str) -> 'CapabilityResult':
        return cls(error=CapabilityError(kind=kind, detail=detail))
