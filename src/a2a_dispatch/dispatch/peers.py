"""Registry of known peer agents keyed by identity."""

import logging

from dataclasses import dataclass, field

from a2a_dispatch.utils.errors import A2ADispatchError, ErrorKind


logger = logging.getLogger(__name__)


class SelfReferenceError(A2ADispatchError):
    """Raised when a delegation targets this agent and cannot be redirected."""

    kind = ErrorKind.self_reference


@dataclass(frozen=True)
class Peer:
    """A cooperating agent reachable over the A2A protocol."""

    name: str
    base_url: str
    skills: tuple[str, ...] = field(default_factory=tuple)


def _normalize(identifier: str) -> str:
    return identifier.strip().rstrip('/').lower()


class PeerRegistry:
    """Resolves delegation targets to peer base URLs.

    Targets may be given as a known peer name or as a base URL. A target
    that resolves to this agent's own identity is redirected to the
    configured redirect peer, or rejected when there is none.
    """

    def __init__(
        self,
        self_id: str,
        peers: list[Peer] | None = None,
        redirect_peer: str | None = None,
    ):
        """Initializes the PeerRegistry.

        Args:
            self_id: This agent's identity, its public base URL.
            peers: Known peers.
            redirect_peer: Name or base URL of the peer that receives
                delegations addressed to this agent. Defaults to the first
                known peer.
        """
        self.self_id = self_id
        self._by_key: dict[str, Peer] = {}
        for peer in peers or []:
            self._by_key[_normalize(peer.name)] = peer
            self._by_key[_normalize(peer.base_url)] = peer
        self.peers = list(peers or [])

        self.redirect_peer: Peer | None = None
        if redirect_peer:
            self.redirect_peer = self._by_key.get(_normalize(redirect_peer))
            if self.redirect_peer is None:
                logger.warning(
                    f'Redirect peer {redirect_peer!r} is not a known agent'
                )
        elif self.peers:
            self.redirect_peer = self.peers[0]

    def is_self(self, target: str) -> bool:
        return _normalize(target) == _normalize(self.self_id)

    def resolve(self, target: str) -> str:
        """Returns the base URL to contact for `target`.

        Raises:
            SelfReferenceError: If `target` is this agent and no redirect
                peer is configured.
        """
        peer = self._by_key.get(_normalize(target))
        base_url = peer.base_url if peer else target

        if not self.is_self(base_url):
            return base_url

        if self.redirect_peer is None or self.is_self(
            self.redirect_peer.base_url
        ):
            raise SelfReferenceError(
                f'Error: Agent {self.self_id} cannot delegate a task to itself '
                'and no peer is configured to receive it.'
            )
        logger.warning(
            f'Agent tried to call itself. Redirecting to {self.redirect_peer.base_url}.'
        )
        return self.redirect_peer.base_url
