import random
from functools import cmp_to_key

import pytest

from ecmrelease.semver import compare, is_valid, major_minor

ORDERED = [
    "1.0.0",
    "v1.0.0-alpha",
    "v1.0.0-alpha.1",
    "v1.0.0-alpha.beta",
    "v1.0.0-beta",
    "v1.0.0-beta.2",
    "v1.0.0-beta.11",
    "v1.0.0-rc.1",
    "v1.0.0",
    "v1.2.0",
    "v1.10.0",
    "v2",
]


@pytest.mark.parametrize(
    "version",
    ["v1.2.3", "v1", "v1.2", "v1.2.3-rc.1+build.5", "v1.24.0", "v1.1.1-k3s1", "v2.0.0+incompatible"],
)
def test_valid_versions(version):
    assert is_valid(version)


@pytest.mark.parametrize(
    "version",
    ["1.2.3", "", "v", "v01.2.3", "v1.02.3", "v1.2-rc1", "v1.2.3-", "v1.2.3-01", "v1.2.3+", "v1.2.3.4", "v1.2.3-a..b"],
)
def test_invalid_versions(version):
    assert not is_valid(version)


@pytest.mark.parametrize(
    ("version", "want"),
    [("v3.24.1", "v3.24"), ("v1.1.1-k3s1", "v1.1"), ("1.2.3", "")],
)
def test_major_minor(version, want):
    assert major_minor(version) == want


def test_major_minor_shorthand():
    assert major_minor("v1") == "v1.0"
    assert major_minor("v1.23") == "v1.23"


def test_sorting_follows_precedence():
    for lower, higher in zip(ORDERED, ORDERED[1:]):
        assert compare(lower, higher) == -1
        assert compare(higher, lower) == 1
    shuffled = list(ORDERED)
    random.Random(3).shuffle(shuffled)
    assert sorted(shuffled, key=cmp_to_key(compare)) == ORDERED
    assert sorted(reversed(ORDERED), key=cmp_to_key(compare)) == ORDERED


def test_compare_is_antisymmetric():
    for a in ORDERED:
        for b in ORDERED:
            assert compare(a, b) == -compare(b, a)


def test_compare_equalities():
    assert compare("v1.24.0", "v1.24.0") == 0
    assert compare("v2", "v2.0.0") == 0
    assert compare("v1.0.0+a", "v1.0.0+b") == 0
    assert compare("bogus", "also-bogus") == 0


def test_compare_against_source_bounds():
    assert compare("v1.25.0", "v1.24.0") == 1
    assert compare("v1.25.0", "v1.26.5") == -1
    assert compare("bogus", "v0.0.1") == -1