"""Run the package installer after package.json was updated."""

from __future__ import annotations

import logging
import subprocess
from typing import Optional, Sequence

from constants import Constants
from versioning.errors import InstallError

logger = logging.getLogger(__name__)


def run_install(directory: str, command: Optional[Sequence[str]] = None) -> int:
    """Run the installer in ``directory`` and return its exit code.

    Raises:
        InstallError: the installer executable could not be started.
    """
    cmd = list(command or Constants.NPM_INSTALL_COMMAND)
    logger.info("Running %s in %s", " ".join(cmd), directory)
    try:
        result = subprocess.run(cmd, cwd=directory, check=False)  # noqa: S603
    except FileNotFoundError as exc:
        raise InstallError(f"Could not run {cmd[0]!r}: executable not found.") from exc
    except OSError as exc:
        raise InstallError(f"Could not run {cmd[0]!r}: {exc}") from exc
    if result.returncode != 0:
        logger.error("%s exited with code %d", " ".join(cmd), result.returncode)
    return result.returncode
