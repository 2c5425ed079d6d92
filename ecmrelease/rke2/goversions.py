"""Listing the Go releases published on the Go download page."""

from __future__ import annotations

from dataclasses import dataclass

import requests

GO_DEV_URL = "https://go.dev/dl/?mode=json"
TIMEOUT = 15.0


@dataclass(frozen=True)
class GoVersionRecord:
    """One Go release and whether it is marked stable."""

    version: str = ""
    stable: bool = False


def go_versions(url: str = GO_DEV_URL) -> list[GoVersionRecord]:
    """Fetch the list of Go releases from ``url``."""
    with requests.get(url, timeout=TIMEOUT) as response:
        if response.status_code != 200:
            raise RuntimeError("failed to get stable go versions")
        payload = response.json()

    if not isinstance(payload, list):
        raise ValueError("expected a list of go versions")
    records = []
    for entry in payload:
        if not isinstance(entry, dict):
            raise ValueError(f"invalid go version entry: {entry!r}")
        records.append(
            GoVersionRecord(
                version=str(entry.get("version") or ""),
                stable=bool(entry.get("stable", False)),
            )
        )
    return records