"""Repository-level helpers: releases, tags, issues and changelog collection."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .github import GitHubClient

RELEASE_NOTE_SECTION = "```release-note"
EMPTY_RELEASE_NOTE = RELEASE_NOTE_SECTION + "\r\n\r\n```"
NONE_RELEASE_NOTE = RELEASE_NOTE_SECTION + "\r\nNONE\r\n```"

OWNER_REPO_SEPARATOR = "/"

_HARDENED_BUILDS = """
    base calico cni-plugins containerd coredns crictl dns-nodecache etcd flannel
    ib-sriov-cni k8s-metrics-server kubernetes multus rke2-cloud-provider runc
    sriov-cni sriov-network-device-plugin sriov-network-resources-injector
    sriov-operator whereabouts
"""

_MIRRORED = """
    ingress-nginx-kube-webhook-certgen
    cilium-cilium cilium-operator-aws cilium-operator-azure cilium-operator-generic
    calico-operator calico-ctl calico-kube-controllers calico-typha calico-node
    calico-pod2daemon-flexvol calico-cni calico-apiserver
    cloud-provider-vsphere-cpi-release-manager cloud-provider-vsphere-csi-release-driver
    cloud-provider-vsphere-csi-release-syncer
    sig-storage-csi-node-driver-registrar sig-storage-csi-resizer sig-storage-livenessprobe
    sig-storage-csi-attacher sig-storage-csi-provisioner
"""

_ADJACENT = "rke2-upgrade rke2-packaging system-agent-installer-rke2 system-upgrade-controller"

RKE2_HARDENED_IMAGES = tuple(
    f"rancher/image-build-{name}" for name in _HARDENED_BUILDS.split()
) + ("rancher/ingress-nginx",)
RKE2_MIRRORED_IMAGES = tuple(f"mirrored-{name}" for name in _MIRRORED.split())
RKE2_ADJACENT = tuple(f"rancher/{name}" for name in _ADJACENT.split())

# (indent level, done, text) items grouped under section headings.
_RELEASE_CHECKLIST = (
    (
        "Prep work",
        (
            (0, True, "PJM: notify Dev and QA of the incoming releases and put them on the team calendar"),
            (0, False, "PJM: notify Dev and QA of the date the latest release becomes stable (latest minor only)"),
            (0, False, "PJM: agree the matching Rancher release date with the Rancher PJM"),
            (1, True, "Open rancher/rancher tracking issues for every Rancher line receiving this release, "
                      "assigned to the captain, linked here and in the right milestone"),
            (1, False, "Keep the RKE2 and Rancher release dates in step and report changes to both teams"),
            (0, False, "QA: review the changes and plan testing"),
            (0, False, "Release Captain: draft release notes in the private release-notes repo, then create a "
                       "draft pre-release on GitHub with title and target branch, leaving the tag empty"),
            (0, False, "QA: validate and close every issue in the release milestone"),
        ),
    ),
    (
        "Vendor and release work",
        (
            (0, False, "Release Captain: tag the hardened Kubernetes release"),
            (0, False, "Release Captain: bump Helm chart versions"),
            (0, False, "Release Captain: update RKE2"),
            (0, False, "Release Captain: tag the RKE2 RC"),
            (0, False, "Release Captain: tag the RKE2 packaging RC as testing"),
            (0, False, "Release Captain: open KDM PRs against the dev branches using the RC"),
            (1, False, "Link or open a rancher/rancher issue when server args, agent args or charts change"),
            (1, False, "Escalate any new issues to the Rancher PJM"),
            (0, False, "EM: review and merge the KDM PR"),
            (0, False, "QA: run Rancher against the dev KDM branch and test import, upgrade and provisioning "
                       "with the RCs"),
            (0, False, "Release Captain: tag the RKE2 release"),
            (0, False, "Release Captain: attach release notes"),
            (0, False, "Release Captain: tag RKE2 packaging as testing"),
            (0, False, "Release Captain: tag RKE2 packaging as latest"),
        ),
    ),
    (
        "Post-release work",
        (
            (0, False, "Release Captain: once CI is green and all artifacts exist, clear the pre-release flag"),
            (0, False, "Wait 24 hours"),
            (0, False, "Release Captain: tag RKE2 packaging as stable"),
            (0, False, "Release Captain: set the stable release in channels.yaml"),
            (0, False, "Release Captain: open KDM PRs moving the dev branches from the RC to the final release, "
                       "linked to the rancher/rancher tracking issue"),
            (0, False, "EM: review and merge the KDM PR and flag it for QA"),
            (0, False, "QA: validate the KDM PR through the linked issue"),
            (0, False, "PJM: close the GitHub milestone"),
        ),
    ),
)


def _render_checklist(sections: tuple) -> list[str]:
    lines = []
    for heading, items in sections:
        lines.append(f"**{heading}:**")
        for depth, done, text in items:
            box = "[x]" if done else "[ ]"
            lines.append(f"{'  ' * depth}- {box} {text}")
    return lines


CUT_RKE2_RELEASE_ISSUE = "\n".join(
    [
        "**Summary:**",
        "Patch release tracking task.",
        "Dev complete: roughly one week before the upstream release date.",
        "**Required releases:**",
        "_Release for QA as soon as possible:_",
        "-  {release}",
        "_Release after QA approval:_",
        "-  {release} (not on a Friday unless agreed otherwise)",
        *_render_checklist(_RELEASE_CHECKLIST),
    ]
) + "\n"

_WORD = re.compile(r"[^\W_]+")


@dataclass
class CreateReleaseOpts:
    """Options for creating a GitHub release."""

    owner: str = ""
    repo: str = ""
    name: str = ""
    tag: str = ""
    prerelease: bool = False
    branch: str = ""
    release_notes: str = ""
    draft: bool = False


@dataclass
class CreateReleaseIssueOpts:
    """Options for opening a release-tracking issue."""

    owner: str = ""
    repo: str = ""
    release: str = ""
    captain: str = ""


@dataclass
class Issue:
    """Title and body templates for a new issue, filled with ``str.format``."""

    id: int = 0
    title: str = "[{}] - {}"
    body: str = "Backport fix for {}\n\n* #{}"


@dataclass
class ChangeLog:
    """One pull request's entry in a release changelog."""

    title: str
    note: str
    number: int
    url: str


def split_owner_repo(owner_repo: str) -> tuple[str, str]:
    """Split "owner/repo" into its two parts."""
    parts = owner_repo.split(OWNER_REPO_SEPARATOR)
    if len(parts) != 2:
        raise ValueError("invalid format")
    return parts[0], parts[1]


def strip_backport_tag(s: str) -> str:
    """Remove a leading "[Release-x.y]" style backport tag from a title."""
    if "Release" in s or ("release" in s and "[" in s) or "]" in s:
        parts = s.split("]")
        if len(parts) < 2:
            raise ValueError(f"no closing bracket in backport title: {s!r}")
        s = parts[1]
    return s.strip(" ")


def extract_release_note(body: str) -> str:
    """Return the contents of the release-note block of a pull request body."""
    if (
        RELEASE_NOTE_SECTION not in body
        or EMPTY_RELEASE_NOTE in body
        or NONE_RELEASE_NOTE in body
    ):
        return ""
    note = []
    in_note = False
    for line in body.split("\n"):
        if RELEASE_NOTE_SECTION in line:
            in_note = True
            continue
        if "```" in line:
            in_note = False
        if in_note and line:
            note.append(line.removeprefix("* "))
    return "".join(note).strip().replace("\r", "\n")


def list_releases(client: GitHubClient, owner: str, repo: str) -> list[dict[str, Any]]:
    """Return the first page of releases of the repository."""
    releases, _next_page = client.list_releases(owner, repo)
    return releases


def list_tags(client: GitHubClient, owner: str, repo: str) -> list[dict[str, Any]]:
    """Return the first page of tags of the repository."""
    return client.list_tags(owner, repo)


def latest_tag(client: GitHubClient, owner: str, repo: str) -> dict[str, Any] | None:
    """Return the most recent tag, or None when the repository has none."""
    tags = list_tags(client, owner, repo)
    return tags[0] if tags else None


def create_release(client: GitHubClient, opts: CreateReleaseOpts | None) -> dict[str, Any]:
    """Create a release described by ``opts``."""
    if opts is None:
        raise ValueError("CreateReleaseOpts cannot be None")
    release: dict[str, Any] = {
        "name": opts.name,
        "tag_name": opts.tag,
        "prerelease": opts.prerelease,
        "target_commitish": opts.branch,
        "draft": opts.draft,
    }
    if opts.release_notes:
        release["body"] = opts.release_notes
        release["generate_release_notes"] = True
    return client.create_release(opts.owner, opts.repo, release)


def create_release_issue(client: GitHubClient, opts: CreateReleaseIssueOpts) -> dict[str, Any]:
    """Open the issue that tracks cutting a release."""
    issue = {
        "title": "Cut " + opts.release,
        "body": CUT_RKE2_RELEASE_ISSUE.format(release=opts.release),
        "assignee": opts.captain,
        "state": "open",
    }
    return client.create_issue(opts.owner, opts.repo, issue)


def retrieve_original_issue(
    client: GitHubClient, owner: str, repo: str, issue_id: int
) -> dict[str, Any]:
    """Fetch the issue being backported."""
    return client.get_issue(owner, repo, int(issue_id))


def _title_case(text: str) -> str:
    return _WORD.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def create_backport_issue(
    client: GitHubClient,
    orig_issue: dict[str, Any],
    owner: str,
    repo: str,
    branch: str,
    user: str,
    issue: Issue,
) -> dict[str, Any]:
    """Open a backport issue for ``branch`` that refers to the original issue."""
    orig_title = orig_issue.get("title") or ""
    title = issue.title.format(_title_case(branch), orig_title)
    body = issue.body.format(orig_title, orig_issue.get("number"))

    if user:
        assignee = user
    elif orig_issue.get("assignee"):
        assignee = orig_issue["assignee"].get("login")
    else:
        assignee = ""

    return client.create_issue(
        owner,
        repo,
        {
            "title": title,
            "body": body,
            "labels": ["kind/backport"],
            "assignee": assignee,
        },
    )


def retrieve_changelog_contents(
    client: GitHubClient, owner: str, repo: str, prev_milestone: str, milestone: str
) -> list[ChangeLog]:
    """Collect one changelog entry per pull request between two milestones."""
    comparison = client.compare_commits(owner, repo, prev_milestone, milestone) or {}
    found: list[ChangeLog] = []
    seen: set[int] = set()
    for commit in comparison.get("commits") or []:
        sha = commit.get("sha") or ""
        if not sha:
            continue
        prs = client.list_pull_requests_with_commit(owner, repo, sha)
        if len(prs) != 1:
            continue
        pr = prs[0]
        number = pr.get("number") or 0
        if number in seen:
            continue
        found.append(
            ChangeLog(
                title=strip_backport_tag((pr.get("title") or "").strip()),
                note=extract_release_note(pr.get("body") or ""),
                number=number,
                url=pr.get("html_url") or "",
            )
        )
        seen.add(number)
    return found