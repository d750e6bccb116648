"""Update package.json dependencies to resolved versions.

Resolution is all-or-nothing: the manifest is only touched once every
anchor and every reachable peer dependency resolved without error.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from constants import Constants
from registry.npm.client import RegistryClient
from registry.npm.manifest import load_manifest, write_manifest

from .models import Manifest
from .resolvers.npm import NpmPeerResolver

logger = logging.getLogger(__name__)


async def resolve_updates(
    manifest: Mapping[str, Any],
    packages: Iterable[str],
    version: Optional[str] = Constants.DEFAULT_DIST_TAG,
    loose: bool = False,
    client: Optional[RegistryClient] = None,
) -> Dict[str, str]:
    """Resolve new constraints for ``packages`` and their peer dependencies.

    Args:
        manifest: Parsed package.json document.
        packages: Anchor package names, all updated to the same selector.
        version: Selector (dist-tag, version, range or ``*``); falsy means ``latest``.
        loose: Widen exact selections into ``~`` ranges.
        client: Registry client; a default one is opened and closed when omitted.

    Returns:
        Mapping of package name to resolved constraint.
    """
    selector = version or Constants.DEFAULT_DIST_TAG
    targets = {name: selector for name in packages}
    if client is None:
        async with RegistryClient(Constants.REGISTRY_URL_NPM, timeout=Constants.REQUEST_TIMEOUT) as owned:
            return await resolve_updates(manifest, targets, selector, loose, owned)

    resolver = NpmPeerResolver(client, Manifest(manifest), loose=loose)
    state = await resolver.resolve(targets)
    resolved = state.as_dict()
    logger.info("Resolved %d package(s) for %s", len(resolved), ", ".join(sorted(targets)))
    return resolved


def apply_updates(document: Mapping[str, Any], resolved: Mapping[str, str]) -> Dict[str, Any]:
    """Copy of ``document`` with every already-declared dependency set to its resolved constraint.

    Dependencies that are not declared are never added; fields that are not
    JSON objects are left alone.
    """
    updated = copy.deepcopy(dict(document))
    for field_name in Constants.DEPENDENCY_FIELDS:
        deps = updated.get(field_name)
        if not isinstance(deps, dict):
            continue
        for name in deps:
            if resolved.get(name):
                deps[name] = resolved[name]
    return updated


async def update_package_json(
    path: str,
    packages: Iterable[str],
    version: Optional[str] = Constants.DEFAULT_DIST_TAG,
    loose: bool = False,
    client: Optional[RegistryClient] = None,
    dry_run: bool = False,
) -> Dict[str, str]:
    """Load, resolve, apply and (unless ``dry_run``) write a package.json.

    Returns:
        The resolved mapping.
    """
    document = load_manifest(path)
    resolved = await resolve_updates(document, packages, version, loose, client)
    updated = apply_updates(document, resolved)
    if dry_run:
        logger.info("Dry run: %s left unchanged", path)
    elif updated != document:
        write_manifest(path, updated)
    else:
        logger.info("%s is already up to date", path)
    return resolved
