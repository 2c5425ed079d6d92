"""Queries over the releases of a GitHub repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .github import GitHubClient, GitHubError

K3S_REPO = "k3s"
RKE2_REPO = "rke2"
RKE2_PACKAGING_REPO = "rke2-packing"

RKE2_ASSETS = 50
K3S_ASSETS = 23
RKE2_PACKAGING_ASSETS = 23

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class StatsMonthly:
    """Release activity within one month."""

    count: int = 0
    captains: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class RelStats:
    """Release activity within one year, broken down by month number."""

    count: int = 0
    monthly: dict[int, StatsMonthly] = field(default_factory=dict)


@dataclass
class StatsData:
    """Release activity over a period, keyed by year and by captain."""

    total: int = 0
    data: dict[int, RelStats] = field(default_factory=dict)
    captains: dict[str, int] = field(default_factory=dict)


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(value))


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def dedup(items: list[str]) -> list[str]:
    """Return ``items`` without duplicates, keeping first occurrences in order."""
    return list(dict.fromkeys(items))


def _release_or_missing(client: GitHubClient, owner: str, repo: str, tag: str) -> dict[str, Any] | None:
    try:
        return client.get_release_by_tag(owner, repo, tag)
    except GitHubError as exc:
        if exc.status_code != 404:
            raise
        return None


def check_upstream_release(
    client: GitHubClient, org: str, repo: str, tags: list[str]
) -> dict[str, bool]:
    """Report for each tag whether a release exists for it."""
    return {tag: _release_or_missing(client, org, repo, tag) is not None for tag in tags}


def kubernetes_go_version(client: GitHubClient, version: str) -> str:
    """Return the compiler toolchain version pinned by a Kubernetes release."""
    content = client.get_contents("kubernetes", "kubernetes", ".go-version", ref=version)
    return content.strip("\n")


def verify_assets(
    client: GitHubClient, owner: str, repo: str, tags: list[str]
) -> dict[str, bool]:
    """Report which releases carry the expected number of assets.

    Missing releases map to False; releases with an unexpected count are left out.
    """
    if not tags:
        raise ValueError("no tags provided")
    expected = {RKE2_REPO: RKE2_ASSETS, K3S_REPO: K3S_ASSETS, RKE2_PACKAGING_REPO: RKE2_PACKAGING_ASSETS}
    results: dict[str, bool] = {}
    for tag in tags:
        if not tag:
            continue
        release = _release_or_missing(client, owner, repo, tag)
        if release is None:
            results[tag] = False
            continue
        if repo in expected and len(release.get("assets") or []) == expected[repo]:
            results[tag] = True
    return results


def list_assets(client: GitHubClient, owner: str, repo: str, tag: str) -> list[dict[str, Any]]:
    """Return the assets of the release with the given tag."""
    if not tag:
        raise ValueError("invalid tag provided")
    release = client.get_release_by_tag(owner, repo, tag)
    return release.get("assets") or []


def delete_assets_by_release(client: GitHubClient, owner: str, repo: str, tag: str) -> None:
    """Delete every asset of the release with the given tag."""
    for asset in list_assets(client, owner, repo, tag):
        client.delete_release_asset(owner, repo, asset["id"])


def delete_asset_by_id(client: GitHubClient, owner: str, repo: str, tag: str, asset_id: int) -> None:
    """Delete one release asset."""
    if not tag:
        raise ValueError("invalid tag provided")
    client.delete_release_asset(owner, repo, asset_id)


def _latest_release(releases: list[dict[str, Any]]) -> str | None:
    if not releases:
        return None
    newest = max(
        reversed(releases),
        key=lambda release: _parse_time(release.get("published_at")) or _EPOCH,
    )
    return newest.get("tag_name")


def latest_rc(
    client: GitHubClient, owner: str, repo: str, k8s_version: str, project_suffix: str
) -> str | None:
    """Return the tag of the most recently published release candidate."""
    releases, _next = client.list_releases(owner, repo, page=None, per_page=40)
    candidates = [
        release
        for release in releases
        if k8s_version + "-rc" in (release.get("tag_name") or "")
        and project_suffix in (release.get("tag_name") or "")
    ]
    return _latest_release(candidates)


def latest_pre_release(
    client: GitHubClient, owner: str, repo: str, version: str, pre_release_suffix: str
) -> str | None:
    """Return the tag of the most recently published pre-release of ``version``."""
    releases, _next = client.list_releases(owner, repo)
    marker = f"{version}-{pre_release_suffix}"
    return _latest_release([r for r in releases if marker in (r.get("tag_name") or "")])


def stats(
    client: GitHubClient, start_date: datetime, end_date: datetime, owner: str, repo: str
) -> StatsData:
    """Collect release counts, tags and captains created after ``start_date`` up to ``end_date``."""
    start, end = _as_utc(start_date), _as_utc(end_date)
    if end < start:
        raise ValueError("end date before start date")

    sd = StatsData()
    page: int | None = None
    while True:
        releases, next_page = client.list_releases(owner, repo, page=page, per_page=100)
        for release in releases:
            created = _parse_time(release.get("created_at"))
            if created is None or not start < created <= end:
                continue
            sd.total += 1
            login = (release.get("author") or {}).get("login")
            name = release.get("name") or ""
            year, month = created.year, created.month

            year_stats = sd.data.get(year)
            if year_stats is None:
                sd.data[year] = RelStats(
                    count=1, monthly={month: StatsMonthly(1, [login or ""], [name])}
                )
                continue

            year_stats.count += 1
            month_stats = year_stats.monthly.setdefault(month, StatsMonthly())
            month_stats.count += 1
            month_stats.captains.append(login or "")
            month_stats.tags.append(name)

            if login is not None:
                sd.captains[login] = sd.captains.get(login, 0) + 1

        if not next_page:
            break
        page = next_page

    for year_stats in sd.data.values():
        for month_stats in year_stats.monthly.values():
            month_stats.captains = dedup(month_stats.captains)
    return sd