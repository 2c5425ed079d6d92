import pytest
import responses
from responses import matchers

from ecmrelease.rke2.goversions import GO_DEV_URL, GoVersionRecord, go_versions

BASE = "https://go.example.com/dl/"
URL = BASE + "?mode=json"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def _register(mock, body, status=200):
    mock.add(
        responses.GET,
        BASE,
        body=body,
        status=status,
        content_type="application/json",
        match=[matchers.query_param_matcher({"mode": "json"})],
    )


def test_go_versions(mocked):
    _register(mocked, '[{"version": "go1.21.3", "stable": true}, {"version": "go1.20.10", "stable": true}]')
    assert go_versions(URL) == [
        GoVersionRecord(version="go1.21.3", stable=True),
        GoVersionRecord(version="go1.20.10", stable=True),
    ]


def test_go_versions_ignores_extra_fields_and_defaults(mocked):
    _register(mocked, '[{"version": "go1.22rc1", "files": []}, {"stable": true}]')
    assert go_versions(URL) == [
        GoVersionRecord(version="go1.22rc1", stable=False),
        GoVersionRecord(version="", stable=True),
    ]


def test_go_versions_bad_status(mocked):
    _register(mocked, "oops", status=500)
    with pytest.raises(RuntimeError, match="failed to get stable go versions"):
        go_versions(URL)


def test_go_versions_invalid_json(mocked):
    _register(mocked, "not json")
    with pytest.raises(ValueError):
        go_versions(URL)


def test_go_versions_not_a_list(mocked):
    _register(mocked, '{"version": "go1.21.3"}')
    with pytest.raises(ValueError):
        go_versions(URL)


def test_go_versions_default_url(mocked):
    mocked.add(
        responses.GET,
        "https://go.dev/dl/",
        json=[{"version": "go1.23.0", "stable": True}],
        match=[matchers.query_param_matcher({"mode": "json"})],
    )
    assert GO_DEV_URL == "https://go.dev/dl/?mode=json"
    assert go_versions() == [GoVersionRecord("go1.23.0", True)]