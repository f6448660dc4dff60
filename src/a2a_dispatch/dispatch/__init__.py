"""Output classification and capability dispatch."""

from a2a_dispatch.dispatch.classifier import classify_output
from a2a_dispatch.dispatch.peers import Peer, PeerRegistry, SelfReferenceError
from a2a_dispatch.dispatch.result import (
    CapabilityError,
    CapabilityResult,
    ClassifiedOutput,
    Directive,
    FinalAnswer,
)


__all__ = [
    'CapabilityError',
    'CapabilityResult',
    'ClassifiedOutput',
    'Directive',
    'FinalAnswer',
    'Peer',
    'PeerRegistry',
    'SelfReferenceError',
    'classify_output',
]
