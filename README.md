# ecmrelease

A library of helpers for cutting releases of k3s, RKE2, the Rancher UI,
dashboard and CLI. It talks to GitHub over its REST API and reads version
information from the raw files published on a release branch.

## Installation

    pip install ecmrelease

For running the tests:

    pip install "ecmrelease[test]"
    pytest

## Modules

- `ecmrelease.github` – `GitHubClient`, a small `requests`-based client for
  releases, release assets, tags, file contents, commit comparisons, pull
  requests and issues. `new_github(token)` returns an authenticated client
  with a 10 second timeout, or an anonymous one without a timeout when no
  token is given. Error responses are raised as `GitHubError`, which carries
  `status_code`, `message` and `url`.
- `ecmrelease.notes` – `gen_release_notes(client, owner, repo, milestone,
  prev_milestone)` collects the pull requests merged between two milestones,
  looks up the versions of embedded components (containerd, runc, etcd,
  kine, SQLite, CNIs, rke2 charts, ...) and renders Markdown release notes for
  `k3s`, `rke2`, `ui`, `dashboard` or `cli`. Any other repo raises
  `ValueError`. The data classes `ReleaseNoteData`, `K3sReleaseNoteData` and
  `RKE2ReleaseNoteData` can also be filled and passed to
  `render_release_notes`. The helpers `maj_min`, `trim_periods` and
  `capitalize` are available as template filters.
- `ecmrelease.lookup` – reads `go.mod`, `scripts/version.sh`, `Dockerfile`,
  image lists, `sqlite3-binding.h` and `chart_versions.yaml` from raw
  GitHub content (`go_mod_lib_version`, `build_script_version`,
  `dockerfile_version`, `image_tag_version`, `sqlite_version_binding`,
  `rke2_charts_version`) and builds Calico release-note links
  (`calico_url`). Lookups that fail return an empty string.
- `ecmrelease.releases` – `check_upstream_release`, `verify_assets`,
  `list_assets`, `delete_assets_by_release`, `delete_asset_by_id`,
  `latest_rc`, `latest_pre_release`, `kubernetes_go_version` and `stats`,
  which counts releases per year and month with their tags and captains
  (`StatsData`, `RelStats`, `StatsMonthly`).
- `ecmrelease.repository` – `create_release` from `CreateReleaseOpts`,
  `create_release_issue` from `CreateReleaseIssueOpts`,
  `create_backport_issue`, `retrieve_original_issue`,
  `retrieve_changelog_contents` (one `ChangeLog` per pull request),
  `extract_release_note`, `strip_backport_tag`, `split_owner_repo`,
  `list_releases`, `list_tags` and `latest_tag`.
- `ecmrelease.ui` – `create_release(client, opts, rc, release_type,
  previous_tag, dry_run)` tags the next numbered pre-release (for example
  `v2.9.0-rc3`) or a draft release with generated notes. It returns the
  options used and the created release, or `None` for the release on a dry
  run.
- `ecmrelease.semver` – `is_valid`, `major_minor` and `compare` for
  `v`-prefixed semantic versions.
- `ecmrelease.gomod` – `parse_go_mod` returns a `GoMod` whose
  `find_version(library)` prefers `replace` directives over `require`.
- `ecmrelease.rke2.images` – `ReleaseInspector` reads the per-platform
  image lists of an RKE2 release (from a mapping of file names to contents,
  or from a directory) and `image_map()` records which platforms expect each
  image. `parse_reference` parses image references into `ImageReference`.
- `ecmrelease.rke2.goversions` – `go_versions()` reads the list of Go
  releases as `GoVersionRecord` values.

## Example

```python
from ecmrelease.github import new_github
from ecmrelease.notes import gen_release_notes

client = new_github("token")
notes = gen_release_notes(client, "k3s-io", "k3s", "v1.30.2+k3s1", "v1.30.1+k3s1")
print(notes)
```

```python
from ecmrelease.repository import split_owner_repo, strip_backport_tag

split_owner_repo("rancher/rke2")                    # ("rancher", "rke2")
strip_backport_tag("[Release-1.24] Some backport")  # "Some backport"
```

Invalid input raises `ValueError`.

## What it does not do

- There is no command-line program; everything is called from Python.
- It does not run git: no cherry-picks, branch pushes or comparisons of
  local and remote branches for backports. `create_backport_issue` only
  opens the GitHub issue.
- `ReleaseInspector` does not query container registries; it only reads the
  image lists. The `oss` and `prime` arguments are stored but not used.
- It does not create image-build-base releases or check container image
  architectures; `go_versions` only lists Go releases.