"""Error taxonomy for manifest updates.

Every error is terminal to a resolution run: nothing here is retried or
swallowed, and the CLI maps each class to an exit code.
"""

from typing import Optional


class UpdateError(Exception):
    """Base class for all update failures."""


class ManifestError(UpdateError):
    """The package.json could not be found, parsed or written."""


class InstallError(UpdateError):
    """The package installer could not be started."""


class RegistryError(UpdateError):
    """Network or parse failure reaching or reading the registry."""

    def __init__(self, package: str, reason: str, status: Optional[int] = None):
        self.package = package
        self.reason = reason
        self.status = status
        super().__init__(f"Could not get metadata for package {package!r} from the registry: {reason}")


class InvalidSelectorError(UpdateError):
    """A version selector is neither a dist-tag nor a valid range or version."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f'Invalid range or version: "{selector}".')


class NoSatisfyingVersionError(UpdateError):
    """No published version matches a selector."""

    def __init__(self, package: str, selector: str):
        self.package = package
        self.selector = selector
        super().__init__(f'Version "{selector}" has no satisfying version for package {package}')


class DowngradeError(UpdateError):
    """Resolution would move a declared dependency to an older version."""

    def __init__(self, package: str, current: str, proposed: str):
        self.package = package
        self.current = current
        self.proposed = proposed
        super().__init__(f'Cannot downgrade package "{package}" from version "{current}" to "{proposed}".')


class ConflictError(UpdateError):
    """Two constraints reached for one package have no version in common."""

    def __init__(self, package: str, proposed: str, existing: str):
        self.package = package
        self.proposed = proposed
        self.existing = existing
        super().__init__(
            "Cannot update safely because packages have conflicting dependencies. Package "
            f'{package} would need to match both versions "{proposed}" and "{existing}", '
            "which are not compatible."
        )
