"""Data models for registry metadata and manifest dependency fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Tuple

from constants import Constants
from .errors import RegistryError


def _string_map(value: Any) -> Dict[str, str]:
    """Keep only str -> str entries of a JSON object; anything else is ignored."""
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


@dataclass(frozen=True)
class VersionManifest:
    """The parts of one published version's manifest used during resolution."""
    version: str
    peer_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, version: str, doc: Any) -> "VersionManifest":
        """Build from a ``versions[<version>]`` entry of a packument."""
        peers = doc.get("peerDependencies") if isinstance(doc, dict) else None
        return cls(version=version, peer_dependencies=_string_map(peers))


@dataclass(frozen=True)
class PackageMetadata:
    """Registry view of one package (the npm "packument").

    Only ``name``, ``dist-tags`` and ``versions`` are read; every other key
    of the document is ignored.
    """
    name: str
    dist_tags: Dict[str, str]
    versions: Dict[str, VersionManifest]

    @classmethod
    def from_document(cls, doc: Any, requested_name: str) -> "PackageMetadata":
        """Validate and convert a parsed packument.

        Raises:
            RegistryError: when the document is not an object or has no
                ``versions`` object.
        """
        if not isinstance(doc, dict):
            raise RegistryError(requested_name, "registry document is not a JSON object")
        raw_versions = doc.get("versions")
        if not isinstance(raw_versions, dict):
            raise RegistryError(requested_name, "registry document has no 'versions' object")
        name = doc.get("name")
        if not isinstance(name, str) or not name:
            name = requested_name
        versions = {
            version: VersionManifest.from_document(version, entry)
            for version, entry in raw_versions.items()
        }
        return cls(name=name, dist_tags=_string_map(doc.get("dist-tags")), versions=versions)

    def peer_dependencies(self, version: str) -> Dict[str, str]:
        """Peer dependencies declared by a published version (empty if unknown)."""
        entry = self.versions.get(version)
        return dict(entry.peer_dependencies) if entry else {}


@dataclass
class Manifest:
    """Read-only view over the dependency fields of a parsed package.json."""
    document: Mapping[str, Any]

    def dependency_fields(self) -> Iterator[Tuple[str, str, str]]:
        """Yield ``(field, name, declared_version)`` for every declared dependency."""
        for field_name in Constants.DEPENDENCY_FIELDS:
            for name, declared in _string_map(self.document.get(field_name)).items():
                yield field_name, name, declared
