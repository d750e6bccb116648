"""Turn a version selector plus registry metadata into a concrete constraint."""

import logging
import re

from .errors import InvalidSelectorError, NoSatisfyingVersionError
from .models import PackageMetadata
from .ranges import max_satisfying, parse_version, valid_range, valid_version

logger = logging.getLogger(__name__)

OPERATOR_PREFIX_RE = re.compile(r"^[~^]")
WILDCARD = "*"


def select_version(metadata: PackageMetadata, selector: str, loose: bool = False) -> str:
    """Resolve ``selector`` against ``metadata`` into a version constraint.

    A dist-tag resolves to its version. Anything else must be a valid range
    or version and resolves to the highest published match, keeping the
    selector's operator shape: ``*`` pins the match, a leading ``~``/``^`` is
    preserved, anything else pins (or becomes ``~`` when ``loose``).

    Args:
        metadata: Registry metadata of the package.
        selector: Dist-tag, exact version, range or ``*``.
        loose: Widen exact results into ``~`` ranges.

    Returns:
        The constraint string to record, e.g. ``"3.0.0"``, ``"~3.0.0"``, ``"^1.4.2"``.

    Raises:
        InvalidSelectorError: selector is neither a tag nor a valid range.
        NoSatisfyingVersionError: no published version matches.
    """
    tagged = metadata.dist_tags.get(selector)
    if tagged:
        return ("~" if loose else "") + tagged

    if not valid_range(selector):
        raise InvalidSelectorError(selector)
    if valid_version(selector) and loose:
        selector = "~" + str(parse_version(selector))

    match = max_satisfying(metadata.versions.keys(), selector)
    if not match:
        raise NoSatisfyingVersionError(metadata.name, selector)
    logger.debug("Selected %s@%s for selector %r", metadata.name, match, selector)

    operator = OPERATOR_PREFIX_RE.match(selector)
    if selector == WILDCARD:
        return match
    if operator:
        return operator.group(0) + match
    return ("~" if loose else "") + match
