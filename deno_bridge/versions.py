"""
Semantic version range matching.

Ranges follow the npm grammar: ``||`` alternatives, hyphen ranges
(``1.2 - 2.3.4``), primitive comparators (``<``, ``<=``, ``>``, ``>=``, ``=``),
caret and tilde ranges, and x-ranges (``1.x``, ``1.2.*``, ``1``). Every range
is desugared into plain comparators over ``packaging.version.Version``.

Prerelease tags must be expressible in PEP 440 (``-alpha.1``, ``-beta.2``,
``-rc.1``). A purely numeric tag (``1.2.3-0``) maps to a dev release so it
still sorts below the final release.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Union

from packaging.version import InvalidVersion, Version

from .errors import InvalidRangeError

_IDENT = r"[0-9A-Za-z.-]+"

VERSION_RE = re.compile(
    rf"^[v=]?\s*(\d+)\.(\d+)\.(\d+)(?:-({_IDENT}))?(?:\+{_IDENT})?$"
)
PARTIAL_RE = re.compile(
    rf"^[v=]?(\d+|[xX*])(?:\.(\d+|[xX*])(?:\.(\d+|[xX*])(?:-({_IDENT}))?(?:\+{_IDENT})?)?)?$"
)
HYPHEN_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>?)\s+")
COMPARATOR_RE = re.compile(r"^(<=|>=|<|>|=|\^|~>?)?(.*)$")

_OPERATORS: dict[str, Callable[[Version, Version], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
}

# (major, minor, patch, prerelease) with None for wildcard components
Partial = tuple[Optional[int], Optional[int], Optional[int], Optional[str]]
VersionLike = Union[str, Version, None]


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    op: str
    version: Version

    def test(self, version: Version) -> bool:
        return _OPERATORS[self.op](version, self.version)

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


_ANY = (Comparator(">=", Version("0.0.0")),)
_NOTHING = (Comparator("<", Version("0.0.0")),)


@dataclass(frozen=True)
class VersionRange:
    """
    Parsed semantic version range.

    Attributes:
        raw: The range string as given
        alternatives: Comparator sets joined by ``||``; a version matches when
            every comparator of at least one set accepts it
    """

    raw: str
    alternatives: tuple[tuple[Comparator, ...], ...]

    def test(self, version: VersionLike) -> bool:
        """Check whether ``version`` falls inside this range."""
        parsed = version if isinstance(version, Version) else parse_version(version)
        if parsed is None:
            return False
        return any(_test_set(comparators, parsed) for comparators in self.alternatives)

    def __str__(self) -> str:
        return self.raw


def _test_set(comparators: tuple[Comparator, ...], version: Version) -> bool:
    if not all(c.test(version) for c in comparators):
        return False

    if not version.is_prerelease:
        return True

    # Prereleases only match when the range opts in on the same release tuple.
    return any(
        c.version.is_prerelease and c.version.release == version.release
        for c in comparators
    )


def _prerelease_suffix(prerelease: str | None) -> str:
    if not prerelease:
        return ""
    if prerelease.isdigit():
        return f".dev{prerelease}"
    return f"-{prerelease}"


def parse_version(text: VersionLike) -> Version | None:
    """
    Parse a full ``MAJOR.MINOR.PATCH[-pre][+build]`` version string.

    Args:
        text: Version string (surrounding whitespace and a leading ``v`` are ignored)

    Returns:
        Parsed version, or None for missing or malformed input
    """
    if text is None:
        return None
    if isinstance(text, Version):
        return text

    m = VERSION_RE.match(text.strip())
    if not m:
        return None

    major, minor, patch, prerelease = m.groups()
    try:
        return Version(f"{int(major)}.{int(minor)}.{int(patch)}{_prerelease_suffix(prerelease)}")
    except InvalidVersion:
        return None


def _make_version(major: int, minor: int, patch: int, prerelease: str | None = None) -> Version:
    try:
        return Version(f"{major}.{minor}.{patch}{_prerelease_suffix(prerelease)}")
    except InvalidVersion as e:
        raise InvalidRangeError(f"Unsupported prerelease tag: {prerelease}") from e


def _parse_partial(text: str) -> Partial:
    m = PARTIAL_RE.match(text)
    if not m:
        raise InvalidRangeError(f"Invalid version in range: {text!r}")

    parts: list[Optional[int]] = []
    wildcard = False
    for group in m.groups()[:3]:
        if group is None or group in ("x", "X", "*") or wildcard:
            wildcard = True
            parts.append(None)
        else:
            parts.append(int(group))

    prerelease = m.group(4) if parts[2] is not None else None
    return parts[0], parts[1], parts[2], prerelease


def _caret(partial: Partial) -> tuple[Comparator, ...]:
    major, minor, patch, pre = partial
    if major is None:
        return _ANY
    if minor is None:
        return (Comparator(">=", _make_version(major, 0, 0)), Comparator("<", _make_version(major + 1, 0, 0)))
    if patch is None:
        upper = _make_version(major + 1, 0, 0) if major else _make_version(0, minor + 1, 0)
        return (Comparator(">=", _make_version(major, minor, 0)), Comparator("<", upper))

    if major:
        upper = _make_version(major + 1, 0, 0)
    elif minor:
        upper = _make_version(0, minor + 1, 0)
    else:
        upper = _make_version(0, 0, patch + 1)
    return (Comparator(">=", _make_version(major, minor, patch, pre)), Comparator("<", upper))


def _tilde(partial: Partial) -> tuple[Comparator, ...]:
    major, minor, patch, pre = partial
    if major is None:
        return _ANY
    if minor is None:
        return (Comparator(">=", _make_version(major, 0, 0)), Comparator("<", _make_version(major + 1, 0, 0)))
    lower = _make_version(major, minor, patch if patch is not None else 0, pre)
    return (Comparator(">=", lower), Comparator("<", _make_version(major, minor + 1, 0)))


def _xrange(partial: Partial) -> tuple[Comparator, ...]:
    major, minor, patch, pre = partial
    if major is None:
        return _ANY
    if minor is None:
        return (Comparator(">=", _make_version(major, 0, 0)), Comparator("<", _make_version(major + 1, 0, 0)))
    if patch is None:
        return (Comparator(">=", _make_version(major, minor, 0)), Comparator("<", _make_version(major, minor + 1, 0)))
    return (Comparator("=", _make_version(major, minor, patch, pre)),)


def _primitive(op: str, partial: Partial) -> tuple[Comparator, ...]:
    major, minor, patch, pre = partial

    if patch is not None:
        return (Comparator(op, _make_version(major, minor, patch, pre)),)  # type: ignore[arg-type]

    if major is None:
        return _NOTHING if op in ("<", ">") else _ANY

    # Partial versions: widen or narrow to the next boundary.
    if op == ">":
        bound = _make_version(major + 1, 0, 0) if minor is None else _make_version(major, minor + 1, 0)
        return (Comparator(">=", bound),)
    if op == "<=":
        bound = _make_version(major + 1, 0, 0) if minor is None else _make_version(major, minor + 1, 0)
        return (Comparator("<", bound),)
    return (Comparator(op, _make_version(major, minor or 0, 0)),)


def _hyphen(low: Partial, high: Partial) -> tuple[Comparator, ...]:
    comparators: list[Comparator] = []

    if low[0] is not None:
        comparators.append(
            Comparator(">=", _make_version(low[0], low[1] or 0, low[2] or 0, low[3]))
        )

    major, minor, patch, pre = high
    if major is not None:
        if minor is None:
            comparators.append(Comparator("<", _make_version(major + 1, 0, 0)))
        elif patch is None:
            comparators.append(Comparator("<", _make_version(major, minor + 1, 0)))
        else:
            comparators.append(Comparator("<=", _make_version(major, minor, patch, pre)))

    return tuple(comparators) or _ANY


def _parse_comparator(token: str) -> tuple[Comparator, ...]:
    m = COMPARATOR_RE.match(token)
    op, rest = m.group(1) or "", m.group(2)  # type: ignore[union-attr]
    partial = _parse_partial(rest)

    if op == "^":
        return _caret(partial)
    if op.startswith("~"):
        return _tilde(partial)
    if op in ("", "="):
        return _xrange(partial)
    return _primitive(op, partial)


def _parse_set(text: str) -> tuple[Comparator, ...]:
    text = text.strip()
    if not text:
        return _ANY

    hyphen = HYPHEN_RE.match(text)
    if hyphen:
        return _hyphen(_parse_partial(hyphen.group(1)), _parse_partial(hyphen.group(2)))

    comparators: list[Comparator] = []
    for token in OPERATOR_SPACE_RE.sub(r"\1", text).split():
        comparators.extend(_parse_comparator(token))
    return tuple(comparators)


@lru_cache(maxsize=128)
def parse_range(text: str) -> VersionRange:
    """
    Parse an npm-style semantic version range.

    Args:
        text: Range string, e.g. ``^1.20.3`` or ``>=1.2 <2 || 3.x``

    Returns:
        Immutable VersionRange

    Raises:
        InvalidRangeError: If any part of the range is malformed
    """
    if not isinstance(text, str):
        raise InvalidRangeError(f"Version range must be a string, got {type(text).__name__}")

    alternatives = tuple(_parse_set(part) for part in text.split("||"))
    return VersionRange(raw=text, alternatives=alternatives)


def satisfies(version: VersionLike, version_range: str | VersionRange) -> bool:
    """
    Check whether ``version`` satisfies ``version_range``.

    An unknown (None) or malformed version never satisfies anything, and a
    malformed range matches nothing.
    """
    if isinstance(version_range, str):
        try:
            version_range = parse_range(version_range)
        except InvalidRangeError:
            return False
    return version_range.test(version)
