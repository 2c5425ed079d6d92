"""Semantic versions in the "v"-prefixed form used by Go modules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import zip_longest

_NUM = r"(?:0|[1-9][0-9]*)"
_PRE_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"
_BUILD_IDENT = r"[0-9A-Za-z-]+"
_PATTERN = re.compile(
    rf"v({_NUM})"
    rf"(?:\.({_NUM})"
    rf"(?:\.({_NUM})"
    rf"(?:-({_PRE_IDENT}(?:\.{_PRE_IDENT})*))?"
    rf"(?:\+({_BUILD_IDENT}(?:\.{_BUILD_IDENT})*))?"
    r")?)?"
)


@dataclass(frozen=True)
class _Version:
    major: str
    minor: str
    patch: str
    prerelease: str


def _parse(version: str) -> _Version | None:
    match = _PATTERN.fullmatch(version)
    if match is None:
        return None
    major, minor, patch, prerelease, _build = match.groups()
    return _Version(major, minor or "0", patch or "0", prerelease or "")


def is_valid(version: str) -> bool:
    """Report whether ``version`` is a valid semantic version."""
    return _parse(version) is not None


def major_minor(version: str) -> str:
    """Return the "vMAJOR.MINOR" prefix of ``version``, or "" if it is invalid."""
    parsed = _parse(version)
    if parsed is None:
        return ""
    return f"v{parsed.major}.{parsed.minor}"


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _compare_identifier(a: str, b: str) -> int:
    a_num, b_num = a.isdigit(), b.isdigit()
    if a_num and b_num:
        return _sign(int(a) - int(b))
    if a_num:
        return -1
    if b_num:
        return 1
    return (a > b) - (a < b)


def _compare_prerelease(x: str, y: str) -> int:
    if x == y:
        return 0
    if not x:
        return 1
    if not y:
        return -1
    for a, b in zip_longest(x.split("."), y.split(".")):
        if a is None:
            return -1
        if b is None:
            return 1
        result = _compare_identifier(a, b)
        if result:
            return result
    return 0


def compare(v: str, w: str) -> int:
    """Compare two versions, returning -1, 0 or 1.

    An invalid version compares lower than every valid one and equal to any
    other invalid version. Build metadata is ignored.
    """
    pv, pw = _parse(v), _parse(w)
    if pv is None and pw is None:
        return 0
    if pv is None:
        return -1
    if pw is None:
        return 1
    for a, b in ((pv.major, pw.major), (pv.minor, pw.minor), (pv.patch, pw.patch)):
        result = _sign(int(a) - int(b))
        if result:
            return result
    return _compare_prerelease(pv.prerelease, pw.prerelease)