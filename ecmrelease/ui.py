"""Cutting releases of the Rancher UI."""

from __future__ import annotations

import dataclasses
import re
from typing import Any

from .github import GitHubClient
from .notes import gen_release_notes
from .releases import latest_pre_release
from .repository import CreateReleaseOpts
from .repository import create_release as _create_github_release
from .semver import is_valid

_INTEGER = re.compile(r"[+-]?[0-9]+")


def create_release(
    client: GitHubClient,
    opts: CreateReleaseOpts,
    rc: bool,
    release_type: str,
    previous_tag: str = "",
    dry_run: bool = False,
) -> tuple[CreateReleaseOpts, dict[str, Any] | None]:
    """Create a UI release, numbering pre-releases after the latest existing one.

    Returns the options the release was created with and the created
    release, which is None on a dry run.
    """
    if not is_valid(opts.tag):
        raise ValueError("tag isn't a valid semver: " + opts.tag)

    latest = latest_pre_release(client, opts.owner, opts.repo, opts.tag, release_type)

    tag = opts.tag
    if rc:
        number = 1
        if latest is not None:
            _, separator, suffix = latest.partition("-" + release_type)
            if not separator:
                raise ValueError("failed to parse rc number from " + latest)
            if not _INTEGER.fullmatch(suffix):
                raise ValueError(f"invalid {release_type} number {suffix!r} in {latest}")
            number = int(suffix) + 1
        tag = f"{tag}-{release_type}{number}"

    notes = ""
    if not rc:
        notes = gen_release_notes(client, opts.owner, opts.repo, opts.branch, previous_tag)

    final = dataclasses.replace(
        opts, tag=tag, name=tag, prerelease=True, draft=not rc, release_notes=notes
    )
    print(f"create release options: {final}")

    if dry_run:
        print("dry run, skipping creating release")
        return final, None

    created = _create_github_release(client, final)
    print(f"release created: {created.get('html_url')}")
    return final, created