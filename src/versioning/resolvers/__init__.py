"""Version resolvers for different ecosystems."""

from .npm import Edge, NpmPeerResolver, ResolutionState

__all__ = [
    "Edge",
    "NpmPeerResolver",
    "ResolutionState",
]
