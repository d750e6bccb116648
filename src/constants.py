"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    INSTALL_ERROR = 4


class DependencyFields(Enum):
    """package.json fields that declare dependencies.

    Args:
        Enum (string): Manifest field names, in the order they are walked.
    """

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    DEFAULT_DIST_TAG = "latest"
    DEPENDENCY_FIELDS = [field.value for field in DependencyFields]
    PACKAGE_JSON_FILE = "package.json"
    CONFIG_FILES = ["depbump.yml", "depbump.yaml", ".depbump.yml"]
    NPM_INSTALL_COMMAND = ["npm", "install"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPBUMP_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "depbump/0.1"
    ACCEPT_HEADER = "application/json"
