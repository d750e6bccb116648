"""depbump: update npm packages in package.json together with their peer dependencies."""

import asyncio
import json
import logging
import os
import sys
from typing import Dict

from args import parse_args
from cli_config import apply_config_overrides, load_config
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from registry.npm.client import RegistryClient
from registry.npm.install import run_install
from registry.npm.manifest import manifest_path
from versioning.errors import InstallError, ManifestError, RegistryError, UpdateError
from versioning.service import update_package_json

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()
    # Ensure runtime CLI flag wins regardless of environment defaults
    level_name = str(getattr(args, "LOG_LEVEL", "INFO")).upper()
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


async def _resolve(args, path: str) -> Dict[str, str]:
    async with RegistryClient(Constants.REGISTRY_URL_NPM, timeout=Constants.REQUEST_TIMEOUT) as client:
        return await update_package_json(
            path,
            args.packages,
            version=args.VERSION,
            loose=args.LOOSE,
            client=client,
            dry_run=args.DRY_RUN,
        )


def export_json(resolved: Dict[str, str], path: str) -> None:
    """Write the resolved versions to a JSON file."""
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(resolved, file, ensure_ascii=False, indent=2, sort_keys=True)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def print_updates(resolved: Dict[str, str]) -> None:
    """Print one ``name: constraint`` line per resolved package."""
    for name in sorted(resolved):
        print(f"{name}: {resolved[name]}")


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    config = load_config(args.CONFIG, args.DIRECTORY)
    apply_config_overrides(args, config)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action="main",
                target=", ".join(args.packages),
            ),
        )

    path = manifest_path(args.DIRECTORY)
    try:
        resolved = asyncio.run(_resolve(args, path))
    except ManifestError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except RegistryError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except UpdateError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)

    print_updates(resolved)
    if args.OUTPUT:
        export_json(resolved, args.OUTPUT)

    if args.DRY_RUN or args.SKIP_INSTALL:
        return
    try:
        code = run_install(args.DIRECTORY, Constants.NPM_INSTALL_COMMAND)
    except InstallError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.INSTALL_ERROR.value)
    if code != 0:
        sys.exit(ExitCodes.INSTALL_ERROR.value)


if __name__ == "__main__":
    main()
