"""Argument parsing functionality for depbump."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="depbump",
        description=(
            "depbump - Update npm packages in package.json together with their peer dependencies"
        ),
        add_help=True,
    )

    parser.add_argument("packages",
                        metavar="PACKAGE",
                        help="Name of a package to update (must already be a dependency).",
                        nargs="+",
                        type=str)
    parser.add_argument("--to",
                        dest="VERSION",
                        help="Version selector: dist-tag, version, range or '*' (default: latest)",
                        action="store",
                        type=str,
                        default=Constants.DEFAULT_DIST_TAG)
    parser.add_argument("--loose",
                        dest="LOOSE",
                        help="Write '~' ranges instead of exact versions.",
                        action="store_true")
    parser.add_argument("-d", "--directory",
                        dest="DIRECTORY",
                        help="Directory containing package.json (default: current directory)",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("--registry",
                        dest="REGISTRY_URL",
                        help=f"npm registry base URL (default: {Constants.REGISTRY_URL_NPM})",
                        action="store",
                        type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"Registry request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Resolve and report, but do not write package.json or install.",
                        action="store_true")
    parser.add_argument("--skip-install",
                        dest="SKIP_INSTALL",
                        help="Do not run the package installer after updating package.json.",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the resolved versions as JSON to this file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
