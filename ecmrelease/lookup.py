"""Looking up component versions in files published in the k3s and rke2 source trees."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass

import requests
import yaml

from .gomod import parse_go_mod

log = logging.getLogger(__name__)

RAW_CONTENT_URL = "https://raw.githubusercontent.com"
CALICO_ARCHIVE_URL = "https://projectcalico.docs.tigera.io/archive/"
CALICO_LATEST_URL = "https://docs.tigera.io/calico/latest/release-notes/#"

K3S_REPO = "k3s"
RKE2_REPO = "rke2"
K3S_REPO_NAME = "k3s-io/k3s"
RKE2_REPO_NAME = "rancher/rke2"
RKE2_CHARTS_VERSIONS_FILE = "chart_versions.yaml"
DEFAULT_TIMEOUT = 30.0

_QUOTED = r"\"(.*)\""
_CALICO_VERSION = re.compile(r"^v(\d+\.\d+)(?:\.\d+)?$", re.ASCII)


@dataclass
class Chart:
    """One entry of the rke2 chart versions file."""

    version: str = ""
    filename: str = ""
    bootstrap: bool = False


def _repo_name(repo: str) -> str:
    return RKE2_REPO_NAME if repo == RKE2_REPO else K3S_REPO_NAME


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _submatch(match: re.Match[str] | None) -> list[str]:
    if match is None:
        return []
    return [match.group(0), *(group or "" for group in match.groups())]


def find_in_url(url: str, regex: str, word: str, check_status_code: bool = True) -> list[str]:
    """Scan the document at ``url`` for lines containing ``word``.

    With a regex, the submatches of the first line that yields a captured
    group are returned. Without one, every line containing ``word`` is
    returned. Fetch failures yield an empty list.
    """
    try:
        response = requests.get(url, timeout=DEFAULT_TIMEOUT)
    except requests.RequestException as exc:
        log.debug("failed to fetch url %s: %s", url, exc)
        return []
    with response:
        if check_status_code and response.status_code != 200:
            log.debug("status error: %s when fetching %s", response.status_code, url)
            return []
        text = response.content.decode("utf-8", errors="replace")

    pattern = re.compile(regex, re.ASCII) if regex else None
    found: list[str] = []
    for line in _lines(text):
        if word not in line:
            continue
        if pattern is None:
            found.append(line)
            continue
        found = _submatch(pattern.search(line))
        if len(found) > 1:
            return found
    return found


def go_mod_lib_version(library_name: str, repo: str, branch_version: str) -> str:
    """Return the version of a library in the repository's go.mod, or ""."""
    url = f"{RAW_CONTENT_URL}/{_repo_name(repo)}/{branch_version}/go.mod"
    try:
        response = requests.get(url, timeout=DEFAULT_TIMEOUT)
    except requests.RequestException as exc:
        log.debug("failed to fetch url %s: %s", url, exc)
        return ""
    with response:
        if response.status_code != 200:
            log.debug("status error: %s when fetching %s", response.status_code, url)
            return ""
        text = response.content.decode("utf-8", errors="replace")
    try:
        mod = parse_go_mod(text)
    except ValueError as exc:
        log.debug("failed to parse go.mod file: %s", exc)
        return ""
    version = mod.find_version(library_name)
    if version is None:
        log.debug("library %s not found", library_name)
        return ""
    return version


def build_script_version(var_name: str, repo: str, branch_version: str) -> str:
    """Return the version assigned to ``var_name`` in scripts/version.sh."""
    url = f"{RAW_CONTENT_URL}/{_repo_name(repo)}/{branch_version}/scripts/version.sh"
    found = find_in_url(url, r"(?P<version>v[\d\.]+(-k3s.\w*)?)", var_name, True)
    return found[1] if len(found) > 1 else ""


def dockerfile_version(chart_name: str, repo: str, branch_version: str) -> str:
    """Return the tag of the ``chart_name`` image in the rke2 Dockerfile."""
    if "k3s" in repo:
        return ""
    url = f"{RAW_CONTENT_URL}/{RKE2_REPO_NAME}/{branch_version}/Dockerfile"
    found = find_in_url(url, r"FROM\s+[\w-]+/[\w-]+:(.*?)(-build.*)?\s", chart_name, True)
    return found[1] if len(found) > 1 else ""


def image_tag_version(image_name: str, repo: str, branch_version: str) -> str:
    """Return the tag of an image listed in the repository's image list."""
    if repo == RKE2_REPO:
        url = f"{RAW_CONTENT_URL}/{RKE2_REPO_NAME}/{branch_version}/scripts/build-images"
    else:
        url = f"{RAW_CONTENT_URL}/{K3S_REPO_NAME}/{branch_version}/scripts/airgap/image-list.txt"
    found = find_in_url(url, r":(.*)(-build.*)?", image_name, True)
    if len(found) <= 1:
        return ""
    if "-build" in found[1]:
        return found[1].split("-")[0]
    return found[1]


def sqlite_version_binding(sqlite_version: str) -> str:
    """Return the SQLite version bundled with a go-sqlite3 release."""
    url = f"{RAW_CONTENT_URL}/mattn/go-sqlite3/{sqlite_version}/sqlite3-binding.h"
    found = find_in_url(url, _QUOTED, "SQLITE_VERSION", True)
    return found[1] if len(found) > 1 else ""


def calico_url(calico_version: str) -> str:
    """Return the release notes URL for a Calico version."""
    formatted = calico_version
    match = _CALICO_VERSION.match(calico_version)
    if match is not None:
        formatted = "v" + match.group(1)
    archive_url = f"{CALICO_ARCHIVE_URL}{formatted}/release-notes/#{calico_version}"
    if len(find_in_url(archive_url, _QUOTED, "Page Not Found", False)) > 1:
        return CALICO_LATEST_URL + formatted
    return archive_url


def rke2_charts_version(branch_version: str) -> dict[str, Chart]:
    """Return the rke2 charts keyed by the base name of their file.

    A response other than 200 yields an empty mapping; network and YAML
    errors are raised.
    """
    url = f"{RAW_CONTENT_URL}/{RKE2_REPO_NAME}/{branch_version}/charts/{RKE2_CHARTS_VERSIONS_FILE}"
    with requests.get(url, timeout=DEFAULT_TIMEOUT) as response:
        if response.status_code != 200:
            log.debug("status error: %s when fetching %s", response.status_code, url)
            return {}
        text = response.content.decode("utf-8", errors="replace")

    document = yaml.safe_load(text) or {}
    if not isinstance(document, dict):
        raise ValueError(f"{RKE2_CHARTS_VERSIONS_FILE}: expected a mapping")
    charts: dict[str, Chart] = {}
    for entry in document.get("charts") or []:
        chart = Chart(
            version="" if entry.get("version") is None else str(entry["version"]),
            filename=str(entry.get("filename") or ""),
            bootstrap=bool(entry.get("bootstrap", False)),
        )
        charts[posixpath.basename(chart.filename)] = chart
    return charts