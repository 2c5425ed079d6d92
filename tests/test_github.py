import base64
import json
import re

import pytest
import responses

from ecmrelease.github import GitHubClient, GitHubError, new_github

BASE = "https://api.example.com"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def client():
    with GitHubClient("token", timeout=5, base_url=BASE) as c:
        yield c


def test_get_release_by_tag_escapes_tag(client, mocked):
    mocked.add(
        responses.GET,
        re.compile(r".*/releases/tags/.*"),
        json={"tag_name": "v1.28.1+rke2r1", "assets": []},
    )
    release = client.get_release_by_tag("rancher", "rke2", "v1.28.1+rke2r1")
    assert release["tag_name"] == "v1.28.1+rke2r1"
    assert mocked.calls[0].request.url.endswith("/repos/rancher/rke2/releases/tags/v1.28.1%2Brke2r1")


def test_error_response_raises(client, mocked):
    mocked.add(
        responses.GET,
        re.compile(r".*/releases/tags/.*"),
        json={"message": "Not Found"},
        status=404,
    )
    with pytest.raises(GitHubError) as info:
        client.get_release_by_tag("rancher", "rke2", "missing")
    assert info.value.status_code == 404
    assert info.value.message == "Not Found"


def test_authorization_header_sent(client, mocked):
    mocked.add(responses.GET, f"{BASE}/repos/o/r/tags", json=[{"name": "v1.0.0"}])
    tags = client.list_tags("o", "r")
    assert tags == [{"name": "v1.0.0"}]
    assert mocked.calls[0].request.headers["Authorization"] == "Bearer token"


def test_new_github_without_token_sends_no_authorization(mocked):
    anonymous = new_github("")
    mocked.add(responses.GET, "https://api.github.com/repos/o/r/tags", json=[])
    assert anonymous.list_tags("o", "r") == []
    assert "Authorization" not in mocked.calls[0].request.headers
    assert anonymous.timeout is None


def test_list_releases_reports_next_page(client, mocked):
    mocked.add(
        responses.GET,
        f"{BASE}/repos/o/r/releases",
        json=[{"tag_name": "v1"}],
        headers={"Link": f'<{BASE}/repos/o/r/releases?page=2&per_page=100>; rel="next"'},
    )
    releases, next_page = client.list_releases("o", "r", per_page=100)
    assert releases == [{"tag_name": "v1"}]
    assert next_page == 2
    assert "per_page=100" in mocked.calls[0].request.url
    assert "page=" not in mocked.calls[0].request.url.replace("per_page=", "")


def test_list_releases_last_page(client, mocked):
    mocked.add(responses.GET, f"{BASE}/repos/o/r/releases", json=[])
    releases, next_page = client.list_releases("o", "r", page=3)
    assert releases == []
    assert next_page is None


def test_create_release_posts_body(client, mocked):
    mocked.add(responses.POST, f"{BASE}/repos/o/r/releases", json={"id": 7}, status=201)
    body = {"tag_name": "v1.2.3", "name": "v1.2.3", "prerelease": True}
    created = client.create_release("o", "r", body)
    assert created == {"id": 7}
    assert json.loads(mocked.calls[0].request.body) == body


def test_delete_release_asset(client, mocked):
    mocked.add(responses.DELETE, f"{BASE}/repos/o/r/releases/assets/42", status=204)
    assert client.delete_release_asset("o", "r", 42) is None
    assert mocked.calls[0].request.method == "DELETE"


def test_get_contents_decodes_base64(client, mocked):
    text = "go1.22.2\n"
    mocked.add(
        responses.GET,
        f"{BASE}/repos/kubernetes/kubernetes/contents/.go-version",
        json={"encoding": "base64", "content": base64.b64encode(text.encode()).decode()},
    )
    assert client.get_contents("kubernetes", "kubernetes", ".go-version", ref="v1.30.0") == text
    assert "ref=v1.30.0" in mocked.calls[0].request.url


def test_get_contents_rejects_unsupported_encoding(client, mocked):
    mocked.add(
        responses.GET,
        f"{BASE}/repos/o/r/contents/big.bin",
        json={"encoding": "none", "content": ""},
    )
    with pytest.raises(ValueError):
        client.get_contents("o", "r", "big.bin")


def test_compare_commits_path(client, mocked):
    mocked.add(responses.GET, re.compile(r".*/compare/.*"), json={"commits": []})
    result = client.compare_commits("o", "r", "v1.0.0", "v1.1.0")
    assert result == {"commits": []}
    assert mocked.calls[0].request.url.endswith("/repos/o/r/compare/v1.0.0...v1.1.0")


def test_pull_requests_with_commit_and_issues(client, mocked):
    mocked.add(responses.GET, f"{BASE}/repos/o/r/commits/abc/pulls", json=[{"number": 5}])
    mocked.add(responses.GET, f"{BASE}/repos/o/r/issues/5", json={"number": 5, "title": "t"})
    mocked.add(responses.POST, f"{BASE}/repos/o/r/issues", json={"number": 6}, status=201)
    assert client.list_pull_requests_with_commit("o", "r", "abc") == [{"number": 5}]
    assert client.get_issue("o", "r", 5)["title"] == "t"
    issue = {"title": "Cut v1", "body": "b"}
    assert client.create_issue("o", "r", issue) == {"number": 6}
    assert json.loads(mocked.calls[2].request.body) == issue