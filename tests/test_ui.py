import pytest

from ecmrelease.repository import CreateReleaseOpts
from ecmrelease.ui import create_release


class FakeClient:
    def __init__(self, tags=()):
        self.releases = [
            {"tag_name": tag, "published_at": f"2024-01-{index + 1:02d}T00:00:00Z"}
            for index, tag in enumerate(tags)
        ]
        self.created = []

    def list_releases(self, owner, repo, page=None, per_page=None):
        return list(self.releases), None

    def create_release(self, owner, repo, release):
        self.created.append((owner, repo, release))
        return {"html_url": "https://example.com/releases/1", **release}

    def compare_commits(self, owner, repo, base, head):
        return {"commits": [{"sha": "abc"}]}

    def list_pull_requests_with_commit(self, owner, repo, sha):
        return [{"number": 7, "title": "fix the header", "body": "", "html_url": "https://example.com/pull/7"}]


def _opts(tag="v2.9.0"):
    return CreateReleaseOpts(owner="rancher", repo="ui", tag=tag, branch=tag)


def test_invalid_tag_rejected():
    with pytest.raises(ValueError, match="tag isn't a valid semver: 2.9.0"):
        create_release(FakeClient(), _opts("2.9.0"), True, "rc", dry_run=True)


def test_first_rc_dry_run():
    client = FakeClient()
    final, created = create_release(client, _opts(), True, "rc", dry_run=True)
    assert final.tag == "v2.9.0-rc1"
    assert final.name == final.tag
    assert final.prerelease is True
    assert final.draft is False
    assert final.release_notes == ""
    assert created is None
    assert client.created == []


def test_next_rc_follows_latest_published():
    client = FakeClient(["v2.9.0-rc1", "v2.9.0-rc3", "v2.8.0"])
    final, _ = create_release(client, _opts(), True, "rc", dry_run=True)
    assert final.tag == "v2.9.0-rc4"


def test_alpha_release_type():
    client = FakeClient(["v2.9.0-alpha2"])
    final, created = create_release(client, _opts(), True, "alpha")
    assert final.tag == "v2.9.0-alpha3"
    assert created["tag_name"] == final.tag
    assert len(client.created) == 1
    assert "body" not in client.created[0][2]


def test_unparseable_rc_number():
    client = FakeClient(["v2.9.0-rcX"])
    with pytest.raises(ValueError):
        create_release(client, _opts(), True, "rc", dry_run=True)


def test_final_release_is_draft_with_notes():
    client = FakeClient(["v2.9.0-rc2"])
    opts = _opts()
    final, created = create_release(client, opts, False, "rc", previous_tag="v2.8.0")
    assert final.tag == opts.tag
    assert final.draft is True
    assert final.prerelease is True
    assert "## Changes since v2.8.0:" in final.release_notes
    assert "[(#7)](https://example.com/pull/7)" in final.release_notes
    owner, repo, body = client.created[0]
    assert (owner, repo) == (opts.owner, opts.repo)
    assert body["body"] == final.release_notes
    assert body["generate_release_notes"] is True
    assert created["html_url"] == "https://example.com/releases/1"
    assert opts.release_notes == ""