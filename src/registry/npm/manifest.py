"""Read and write the project's package.json."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict

from common.strict_json import loads_strict
from constants import Constants
from versioning.errors import ManifestError

logger = logging.getLogger(__name__)


def manifest_path(directory: str) -> str:
    """Path of package.json inside ``directory``."""
    return os.path.join(directory, Constants.PACKAGE_JSON_FILE)


def load_manifest(path: str) -> Dict[str, Any]:
    """Load a package.json as a JSON object.

    Raises:
        ManifestError: the file is missing, is not strict JSON, or is not an object.
    """
    logger.debug("Reading %s", path)
    try:
        with open(path, "r", encoding="utf-8") as file:
            content = file.read()
    except FileNotFoundError as exc:
        raise ManifestError("Could not find package.json.") from exc
    except OSError as exc:
        raise ManifestError(f"Could not read package.json: {exc}") from exc

    try:
        document = loads_strict(content)
    except ValueError as exc:
        raise ManifestError("Could not parse package.json.") from exc
    if not isinstance(document, dict):
        raise ManifestError("Could not parse package.json.")
    return document


def write_manifest(path: str, document: Dict[str, Any]) -> None:
    """Write a package.json with 2-space indentation and a trailing newline."""
    logger.debug("Writing %s", path)
    content = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    try:
        with open(path, "w", encoding="utf-8") as file:
            file.write(content)
    except OSError as exc:
        raise ManifestError(f"Could not write package.json: {exc}") from exc
