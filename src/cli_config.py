"""CLI configuration: YAML file, environment and command-line overrides.

Settings are applied onto ``Constants`` in increasing precedence: YAML file,
environment variables, CLI flags. A bad value is logged and skipped so it
never breaks the CLI.
"""

from __future__ import annotations

import logging
import os
import shlex
from typing import Any, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

ENV_REGISTRY_URL = "DEPBUMP_REGISTRY_URL"
ENV_REQUEST_TIMEOUT = "DEPBUMP_REQUEST_TIMEOUT"


def find_config(directory: str = ".") -> Optional[str]:
    """First default config file present in ``directory``, if any."""
    for name in Constants.CONFIG_FILES:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config(config_path: Optional[str] = None, directory: str = ".") -> Dict[str, Any]:
    """Load YAML configuration.

    Args:
        config_path: Explicit config file; when omitted the default file names
            are looked up in ``directory``.
        directory: Directory searched for default config files.

    Returns:
        Configuration dict (empty when there is no usable file).
    """
    path = config_path or find_config(directory)
    if not path:
        return {}
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Ignoring config %s: top level is not a mapping", path)
        return {}
    logger.debug("Loaded config from %s", path)
    return data


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def _set_timeout(value: Any, source: str) -> None:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid request timeout %r from %s", value, source)
        return
    if timeout <= 0:
        logger.warning("Ignoring non-positive request timeout %r from %s", value, source)
        return
    Constants.REQUEST_TIMEOUT = timeout  # type: ignore[assignment]


def _set_install_command(value: Any, source: str) -> None:
    if isinstance(value, str):
        command = shlex.split(value)
    elif isinstance(value, list) and all(isinstance(part, str) for part in value):
        command = list(value)
    else:
        command = []
    if not command:
        logger.warning("Ignoring invalid install command %r from %s", value, source)
        return
    Constants.NPM_INSTALL_COMMAND = command


def apply_config_overrides(args, config: Optional[Dict[str, Any]] = None) -> None:
    """Apply YAML, environment and CLI settings onto ``Constants``."""
    config = config or {}
    registry = _section(config, "registry")
    install = _section(config, "install")

    # YAML
    if isinstance(registry.get("url"), str) and registry["url"]:
        Constants.REGISTRY_URL_NPM = registry["url"]
    if registry.get("timeout") is not None:
        _set_timeout(registry["timeout"], "config")
    if install.get("command") is not None:
        _set_install_command(install["command"], "config")

    # Environment
    env_url = os.environ.get(ENV_REGISTRY_URL)
    if env_url and env_url.strip():
        Constants.REGISTRY_URL_NPM = env_url.strip()
    env_timeout = os.environ.get(ENV_REQUEST_TIMEOUT)
    if env_timeout and env_timeout.strip():
        _set_timeout(env_timeout.strip(), ENV_REQUEST_TIMEOUT)

    # CLI (highest precedence)
    if getattr(args, "REGISTRY_URL", None):
        Constants.REGISTRY_URL_NPM = args.REGISTRY_URL
    if getattr(args, "TIMEOUT", None) is not None:
        _set_timeout(args.TIMEOUT, "--timeout")
