"""NPM peer-dependency resolver.

Walks the anchors of a package.json and every peer dependency reachable from
them, merging the constraints reached for each package by range
intersection.
"""

import asyncio
import logging
from typing import Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Set, Tuple

from semantic_version import Version

from ..errors import ConflictError, DowngradeError, InvalidSelectorError, NoSatisfyingVersionError
from ..models import Manifest
from ..ranges import intersect, intersects, max_satisfying, min_version, valid_range
from ..selection import select_version

logger = logging.getLogger(__name__)


class ResolutionState:
    """Accumulated constraint per package name for one resolution run.

    Every mutation is a plain synchronous method: the resolver only calls them
    from coroutines on one event loop, so check and write never interleave.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._constraints: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self._constraints.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._constraints

    def __len__(self) -> int:
        return len(self._constraints)

    def propose(self, name: str, constraint: str) -> str:
        """Record ``constraint`` for ``name``, intersecting with any existing one.

        Returns:
            The constraint now in effect.

        Raises:
            ConflictError: the two constraints admit no common version.
        """
        existing = self._constraints.get(name)
        if existing is None:
            self._constraints[name] = constraint
            return constraint
        if not intersects(existing, constraint):
            raise ConflictError(name, constraint, existing)
        merged = intersect(existing, constraint)
        self._constraints[name] = merged
        return merged

    def as_dict(self) -> Dict[str, str]:
        return dict(self._constraints)


class Edge(NamedTuple):
    """A dependency edge still to resolve."""

    name: str
    declared: Optional[str]
    selector: str


def _declared_floor(declared: Optional[str]) -> Optional[Version]:
    """Lowest version the declared constraint admits, None if it is not a semver range."""
    if declared is None or not valid_range(declared):
        return None
    try:
        return min_version(declared)
    except ValueError:
        # Valid syntax that admits nothing, e.g. ">2.0.0 <1.0.0".
        return None


async def _gather_or_cancel(tasks: List["asyncio.Future[None]"]) -> None:
    """Await sibling tasks; on the first failure cancel the rest and re-raise it."""
    try:
        await asyncio.gather(*tasks)
    except Exception:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class NpmPeerResolver:
    """Resolve anchors and their peer dependencies against the npm registry.

    Only peer dependencies are followed; dependencies, devDependencies and
    optionalDependencies of resolved packages are never walked. Each
    ``(package, version)`` has its peers expanded at most once per resolver.
    """

    def __init__(self, client, manifest: Manifest, loose: bool = False):
        """Initialize the resolver.

        Args:
            client: Registry client exposing ``async fetch(name) -> PackageMetadata``.
            manifest: Root package.json view.
            loose: Widen exact selections into ``~`` ranges.
        """
        self._client = client
        self._manifest = manifest
        self._loose = loose
        self._expanded: Set[Tuple[str, str]] = set()

    async def resolve(self, targets: Mapping[str, str], state: Optional[ResolutionState] = None) -> ResolutionState:
        """Resolve ``targets`` (name -> selector) into ``state``.

        Any error aborts the whole run; ``state`` must then be discarded.
        """
        if state is None:
            state = ResolutionState()
        await self._resolve_edges(list(self._edges(targets, anchors=True)), state)
        return state

    def _edges(self, targets: Mapping[str, str], anchors: bool) -> Iterator[Edge]:
        declared_names = set()
        for field_name, name, declared in self._manifest.dependency_fields():
            if name not in targets:
                continue
            declared_names.add(name)
            if targets[name] == declared:
                logger.debug("Package %r in %s is already at %r.", name, field_name, declared)
                continue
            yield Edge(name, declared, targets[name])

        for name, selector in targets.items():
            if name in declared_names:
                continue
            if anchors:
                logger.warning("Package %r is not a dependency of package.json; skipping.", name)
                continue
            yield Edge(name, None, selector)

    async def _resolve_edges(self, edges: Iterable[Edge], state: ResolutionState) -> None:
        edges = list(edges)
        if not edges:
            return
        if len(edges) == 1:
            await self._resolve_edge(edges[0], state)
            return
        tasks = [asyncio.ensure_future(self._resolve_edge(edge, state)) for edge in edges]
        await _gather_or_cancel(tasks)

    async def _resolve_edge(self, edge: Edge, state: ResolutionState) -> None:
        metadata = await self._client.fetch(edge.name)
        selected = select_version(metadata, edge.selector, self._loose)
        if not valid_range(selected):
            # A dist-tag pointing at something that is not a version.
            raise InvalidSelectorError(selected)
        match = max_satisfying(metadata.versions.keys(), selected)
        if match is None:
            raise NoSatisfyingVersionError(metadata.name, selected)

        floor = _declared_floor(edge.declared)
        if floor is not None and min_version(selected) < floor:
            raise DowngradeError(edge.name, edge.declared, selected)

        known = edge.name in state
        logger.debug("Recording update for %r to version %s.", edge.name, selected)
        merged = state.propose(edge.name, selected)
        if known:
            # Re-encountered packages are merged but their peers are not walked again.
            logger.debug("Narrowed %r to %s with %r.", edge.name, merged, selected)
            return

        # Peers come from the best published version under the merged constraint.
        version = max_satisfying(metadata.versions.keys(), merged) or match
        if (edge.name, version) in self._expanded:
            return
        self._expanded.add((edge.name, version))

        peers = metadata.peer_dependencies(version)
        if peers:
            logger.debug("Expanding peers of %s@%s: %s", edge.name, version, ", ".join(sorted(peers)))
            await self._resolve_edges(self._edges(peers, anchors=False), state)
