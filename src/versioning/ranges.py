"""npm semver range algebra.

A range such as ``^1.2.0 || >=3.0.0 <3.4`` is normalized into a union of
intervals over ``semantic_version.Version``. Intervals make intersection,
emptiness and lower-bound questions exact; matching published versions is
delegated to ``semantic_version.NpmSpec`` so npm's prerelease rules apply.

Rendering is a function of the normalized interval set, so ``intersect`` is
commutative and associative on its string results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import semantic_version
from semantic_version import Version

_XR = r"[xX*]|\d+"
_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
PARTIAL_RE = re.compile(
    rf"^v?(?P<major>{_XR})"
    rf"(?:\.(?P<minor>{_XR})"
    rf"(?:\.(?P<patch>{_XR})(?:-(?P<pre>{_IDENT}))?(?:\+{_IDENT})?)?)?$"
)
COMPARATOR_RE = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>|~|)(?P<partial>.*)$")
HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")


@dataclass(frozen=True)
class _Partial:
    major: Optional[int]
    minor: Optional[int]
    patch: Optional[int]
    prerelease: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Interval:
    """Versions between two optional bounds; ``None`` means unbounded."""
    lower: Optional[Version] = None
    lower_inclusive: bool = True
    upper: Optional[Version] = None
    upper_inclusive: bool = False

    def intersect(self, other: "Interval") -> Optional["Interval"]:
        """Return the overlap of two intervals, or None when they are disjoint."""
        lower, lower_inc = _max_lower(self, other)
        upper, upper_inc = _min_upper(self, other)
        if lower is not None and upper is not None:
            if lower > upper or (lower == upper and not (lower_inc and upper_inc)):
                return None
            if lower == upper and lower.prerelease and not (
                    _admits_prerelease(self, lower) and _admits_prerelease(other, lower)):
                return None
        return Interval(lower, lower_inc, upper, upper_inc)

    def min_version(self) -> Version:
        if self.lower is None:
            return Version("0.0.0")
        if self.lower_inclusive:
            return self.lower
        if self.lower.prerelease:
            return _version(self.lower.major, self.lower.minor, self.lower.patch,
                            tuple(self.lower.prerelease) + ("0",))
        return _version(self.lower.major, self.lower.minor, self.lower.patch + 1)

    def render(self) -> str:
        low, high = self.lower, self.upper
        if low is None and high is None:
            return "*"
        if low is None:
            return f"{'<=' if self.upper_inclusive else '<'}{high}"
        if high is None:
            return f"{'>=' if self.lower_inclusive else '>'}{low}"
        if low == high:
            return str(low)
        if self.lower_inclusive and not self.upper_inclusive:
            if high == _caret_upper(low):
                return f"^{low}"
            if high == _version(low.major, low.minor + 1, 0):
                return f"~{low}"
        return (f"{'>=' if self.lower_inclusive else '>'}{low} "
                f"{'<=' if self.upper_inclusive else '<'}{high}")


ANY = Interval()


class RangeSet:
    """A normalized union of non-empty, non-overlapping intervals."""

    def __init__(self, intervals: Iterable[Interval]):
        self.intervals: Tuple[Interval, ...] = _normalize(intervals)

    def __bool__(self) -> bool:
        return bool(self.intervals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RangeSet):
            return NotImplemented
        return self.intervals == other.intervals

    def __hash__(self) -> int:
        return hash(self.intervals)

    def __str__(self) -> str:
        return " || ".join(i.render() for i in self.intervals)

    def __repr__(self) -> str:
        return f"RangeSet({str(self)!r})"

    def intersect(self, other: "RangeSet") -> "RangeSet":
        overlaps = []
        for left in self.intervals:
            for right in other.intervals:
                hit = left.intersect(right)
                if hit is not None:
                    overlaps.append(hit)
        return RangeSet(overlaps)

    def min_version(self) -> Optional[Version]:
        if not self.intervals:
            return None
        return min(i.min_version() for i in self.intervals)


def _version(major: int, minor: int, patch: int, prerelease: Tuple[str, ...] = ()) -> Version:
    return Version(major=major, minor=minor, patch=patch, prerelease=prerelease or None)


def _caret_upper(low: Version) -> Version:
    if low.major:
        return _version(low.major + 1, 0, 0)
    if low.minor:
        return _version(0, low.minor + 1, 0)
    return _version(0, 0, low.patch + 1)


def _admits_prerelease(interval: Interval, point: Version) -> bool:
    """npm only lets a prerelease match when a comparator names its major.minor.patch."""
    if interval.lower is None and interval.upper is None:
        return True
    release = (point.major, point.minor, point.patch)
    return any(
        bound is not None and bound.prerelease and (bound.major, bound.minor, bound.patch) == release
        for bound in (interval.lower, interval.upper)
    )


def _max_lower(a: Interval, b: Interval) -> Tuple[Optional[Version], bool]:
    if a.lower is None:
        return b.lower, b.lower_inclusive
    if b.lower is None or a.lower > b.lower:
        return a.lower, a.lower_inclusive
    if b.lower > a.lower:
        return b.lower, b.lower_inclusive
    return a.lower, a.lower_inclusive and b.lower_inclusive


def _min_upper(a: Interval, b: Interval) -> Tuple[Optional[Version], bool]:
    if a.upper is None:
        return b.upper, b.upper_inclusive
    if b.upper is None or a.upper < b.upper:
        return a.upper, a.upper_inclusive
    if b.upper < a.upper:
        return b.upper, b.upper_inclusive
    return a.upper, a.upper_inclusive and b.upper_inclusive


def _lower_key(interval: Interval):
    if interval.lower is None:
        return (0,)
    return (1, interval.lower, 0 if interval.lower_inclusive else 1)


def _touches(current: Interval, following: Interval) -> bool:
    """True if ``following`` (sorted after ``current``) overlaps or abuts it."""
    if current.upper is None or following.lower is None:
        return True
    if following.lower < current.upper:
        return True
    return following.lower == current.upper and (following.lower_inclusive or current.upper_inclusive)


def _normalize(intervals: Iterable[Interval]) -> Tuple[Interval, ...]:
    ordered = sorted(intervals, key=_lower_key)
    merged: List[Interval] = []
    for interval in ordered:
        if merged and _touches(merged[-1], interval):
            last = merged[-1]
            if last.upper is None or interval.upper is None:
                upper, upper_inc = None, False
            elif interval.upper > last.upper:
                upper, upper_inc = interval.upper, interval.upper_inclusive
            elif interval.upper < last.upper:
                upper, upper_inc = last.upper, last.upper_inclusive
            else:
                upper, upper_inc = last.upper, last.upper_inclusive or interval.upper_inclusive
            merged[-1] = Interval(last.lower, last.lower_inclusive, upper, upper_inc)
        else:
            merged.append(interval)
    return tuple(merged)


def _parse_partial(text: str) -> _Partial:
    m = PARTIAL_RE.match(text)
    if not m:
        raise ValueError(f"Invalid version: {text!r}")
    parts: List[Optional[int]] = []
    for group in ("major", "minor", "patch"):
        raw = m.group(group)
        # Anything after a wildcard is a wildcard too ("1.x.3" is "1.x").
        if raw is None or raw in ("x", "X", "*") or (parts and parts[-1] is None):
            parts.append(None)
        else:
            parts.append(int(raw))
    pre = tuple(m.group("pre").split(".")) if m.group("pre") and parts[2] is not None else ()
    return _Partial(parts[0], parts[1], parts[2], pre)


def _comparator_interval(op: str, p: _Partial) -> Optional[Interval]:
    """Translate one comparator into an interval (None when it admits nothing)."""
    major, minor, patch, pre = p.major, p.minor, p.patch, p.prerelease
    if major is None:
        return None if op in (">", "<") else ANY

    if op in ("", "="):
        if minor is None:
            return Interval(_version(major, 0, 0), True, _version(major + 1, 0, 0), False)
        if patch is None:
            return Interval(_version(major, minor, 0), True, _version(major, minor + 1, 0), False)
        exact = _version(major, minor, patch, pre)
        return Interval(exact, True, exact, True)

    if op in ("~", "~>", "^") and minor is None:
        return Interval(_version(major, 0, 0), True, _version(major + 1, 0, 0), False)
    if op in ("~", "~>"):
        return Interval(_version(major, minor, patch or 0, pre), True,
                        _version(major, minor + 1, 0), False)
    if op == "^":
        lower = _version(major, minor, patch or 0, pre)
        if major == 0 and minor == 0 and patch is None:
            return Interval(lower, True, _version(0, 1, 0), False)
        return Interval(lower, True, _caret_upper(lower), False)

    if op == ">":
        if minor is None:
            return Interval(_version(major + 1, 0, 0), True)
        if patch is None:
            return Interval(_version(major, minor + 1, 0), True)
        return Interval(_version(major, minor, patch, pre), False)
    if op == ">=":
        return Interval(_version(major, minor or 0, patch or 0, pre), True)
    if op == "<":
        return Interval(upper=_version(major, minor or 0, patch or 0, pre), upper_inclusive=False)
    # "<="
    if minor is None:
        return Interval(upper=_version(major + 1, 0, 0), upper_inclusive=False)
    if patch is None:
        return Interval(upper=_version(major, minor + 1, 0), upper_inclusive=False)
    return Interval(upper=_version(major, minor, patch, pre), upper_inclusive=True)


def _hyphen_interval(low: _Partial, high: _Partial) -> Interval:
    lower = None
    if low.major is not None:
        lower = _version(low.major, low.minor or 0, low.patch or 0, low.prerelease)
    upper_side = _comparator_interval("<=", high)
    upper = upper_side.upper if upper_side else None
    return Interval(lower, True, upper, upper_side.upper_inclusive if upper_side else False)


def _parse_branch(text: str) -> Optional[Interval]:
    text = text.strip()
    hyphen = HYPHEN_RE.match(text)
    if hyphen:
        return _hyphen_interval(_parse_partial(hyphen.group("low")), _parse_partial(hyphen.group("high")))

    result: Optional[Interval] = ANY
    for token in _OPERATOR_SPACE_RE.sub(r"\1", text).split():
        m = COMPARATOR_RE.match(token)
        interval = _comparator_interval(m.group("op"), _parse_partial(m.group("partial")))
        # Keep validating the rest of the branch even once it is known empty.
        result = result.intersect(interval) if (result is not None and interval is not None) else None
    return result


def parse_range(text: str) -> RangeSet:
    """Parse an npm range expression.

    Raises:
        ValueError: if ``text`` is not a valid range.
    """
    if not isinstance(text, str):
        raise ValueError(f"Invalid range: {text!r}")
    branches = [_parse_branch(branch) for branch in text.split("||")]
    return RangeSet(b for b in branches if b is not None)


def parse_version(text: str) -> Version:
    """Parse an exact version, accepting npm's leading ``v``/``=`` forms."""
    if not isinstance(text, str):
        raise ValueError(f"Invalid version: {text!r}")
    p = _parse_partial(text.strip().lstrip("=").strip())
    if p.patch is None:
        raise ValueError(f"Invalid version: {text!r}")
    return _version(p.major, p.minor, p.patch, p.prerelease)


def valid_version(text: str) -> bool:
    try:
        parse_version(text)
    except ValueError:
        return False
    return True


def valid_range(text: str) -> bool:
    try:
        parse_range(text)
    except ValueError:
        return False
    return True


def normalize_range(text: str) -> str:
    """Canonical rendering of a range ("1.2" -> "~1.2.0", "x" -> "*")."""
    return str(parse_range(text))


def intersects(left: str, right: str) -> bool:
    """True if some version satisfies both ranges."""
    return bool(parse_range(left).intersect(parse_range(right)))


def intersect(left: str, right: str) -> str:
    """Canonical range admitting exactly the versions both ranges admit.

    Raises:
        ValueError: if the ranges do not intersect or either is invalid.
    """
    both = parse_range(left).intersect(parse_range(right))
    if not both:
        raise ValueError(f'Ranges "{left}" and "{right}" do not intersect')
    return str(both)


def min_version(text: str) -> Version:
    """Lowest version admitted by a range (``0.0.0`` when unbounded below).

    Raises:
        ValueError: if the range is invalid or admits nothing.
    """
    lowest = parse_range(text).min_version()
    if lowest is None:
        raise ValueError(f"Range {text!r} admits no version")
    return lowest


def max_satisfying(candidates: Iterable[str], text: str) -> Optional[str]:
    """Highest candidate version matching ``text``, or None.

    Candidates that are not valid semver are skipped. Returns the candidate
    string exactly as published.
    """
    ranges = parse_range(text)
    if not ranges:
        return None
    spec = semantic_version.NpmSpec(str(ranges))
    published = {}
    for candidate in candidates:
        try:
            published[Version(candidate)] = candidate
        except ValueError:
            continue  # Skip invalid versions
    best = spec.select(published.keys())
    return published[best] if best is not None else None
