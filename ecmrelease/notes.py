"""Release notes for k3s, rke2 and the other projects released with this tooling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from jinja2 import DictLoader, Environment, StrictUndefined

from . import semver
from .github import GitHubClient
from .lookup import (
    build_script_version,
    calico_url,
    dockerfile_version,
    go_mod_lib_version,
    image_tag_version,
    rke2_charts_version,
    sqlite_version_binding,
)
from .repository import ChangeLog, retrieve_changelog_contents

K3S_REPO = "k3s"
RKE2_REPO = "rke2"
UI_REPO = "ui"
DASHBOARD_REPO = "dashboard"
CLI_REPO = "cli"
GENERIC_REPOS = (UI_REPO, DASHBOARD_REPO, CLI_REPO)
ALTERNATE_VERSION = "1.23"

CONTAINERD_MOD_LIB = "containerd/containerd"
CONTAINERD_V2_MOD_LIB = CONTAINERD_MOD_LIB + "/v2"

_RKE2_CHART_FILES = {
    "cilium_chart_version": "rke2-cilium.yaml",
    "canal_chart_version": "rke2-canal.yaml",
    "calico_chart_version": "rke2-calico.yaml",
    "calico_crd_chart_version": "rke2-calico-crd.yaml",
    "coredns_chart_version": "rke2-coredns.yaml",
    "ingress_nginx_chart_version": "rke2-ingress-nginx.yaml",
    "metrics_server_chart_version": "rke2-metrics-server.yaml",
    "vsphere_csi_chart_version": "rancher-vsphere-csi.yaml",
    "vsphere_cpi_chart_version": "rancher-vsphere-cpi.yaml",
    "harvester_cloud_provider_chart_version": "harvester-cloud-provider.yaml",
    "harvester_csi_driver_chart_version": "harvester-csi-driver.yaml",
    "snapshot_controller_chart_version": "rke2-snapshot-controller.yaml",
    "snapshot_controller_crd_chart_version": "rke2-snapshot-controller-crd.yaml",
    "snapshot_validation_webhook_chart_version": "rke2-snapshot-validation-webhook.yaml",
}


def maj_min(version: str) -> str:
    """Return the "vMAJOR.MINOR" prefix of a semantic version."""
    result = semver.major_minor(version)
    if not result:
        raise ValueError("version is not valid")
    return result


def trim_periods(version: str) -> str:
    """Remove every period from ``version``."""
    return version.replace(".", "")


def capitalize(s: str) -> str:
    """Upper-case the first letter of ``s``, leaving everything else untouched."""
    index = next((i for i, ch in enumerate(s) if ch.isalpha()), None)
    if index is None:
        return s
    return s[:index] + s[index].upper() + s[index + 1:]


def _strip_rc(milestone: str) -> str:
    index = milestone.find("-rc")
    if index == -1:
        return milestone
    return milestone[:index] + milestone[index + 4:]


def _k8s_version(milestone: str) -> str:
    return _strip_rc(milestone).split("+")[0]


@dataclass
class ReleaseNoteData:
    """Data shared by every release note: the milestone and its changelog."""

    repo: str = UI_REPO
    milestone: str = ""
    major_minor: str = ""
    change_log_version: str = ""
    prev_milestone: str = ""
    changes: list[ChangeLog] = field(default_factory=list)

    template_name: ClassVar[str] = "default"

    def fill(self, milestone: str) -> None:
        """Derive the version fields from the milestone tag."""
        k8s_version = _k8s_version(milestone)
        self.milestone = _strip_rc(milestone)
        self.change_log_version = k8s_version.replace(".", "")
        self.major_minor = ".".join(k8s_version.replace("v", "").split(".")[:2])


@dataclass
class K3sReleaseNoteData(ReleaseNoteData):
    """Release note data for k3s, with its embedded component versions."""

    repo: str = K3S_REPO
    k8s_version: str = ""
    change_log_since: str = ""
    kine_version: str = ""
    sqlite_version: str = ""
    sqlite_version_replaced: str = ""
    etcd_version: str = ""
    containerd_version: str = ""
    runc_version: str = ""
    flannel_version: str = ""
    metrics_server_version: str = ""
    traefik_version: str = ""
    coredns_version: str = ""
    helm_controller_version: str = ""
    local_path_provisioner_version: str = ""

    template_name: ClassVar[str] = "k3s"

    def fill(self, milestone: str) -> None:
        """Look up the component versions in the k3s tree at ``milestone``."""
        super().fill(milestone)
        self.k8s_version = _k8s_version(milestone)

        if (
            semver.compare(self.k8s_version, "v1.24.0") == 1
            and semver.compare(self.k8s_version, "v1.26.5") == -1
        ):
            containerd = build_script_version("VERSION_CONTAINERD", K3S_REPO, milestone)
        else:
            containerd = go_mod_lib_version(
                CONTAINERD_V2_MOD_LIB, K3S_REPO, milestone
            ) or go_mod_lib_version(CONTAINERD_MOD_LIB, K3S_REPO, milestone)

        if self.major_minor == ALTERNATE_VERSION:
            runc = build_script_version("VERSION_RUNC", K3S_REPO, milestone)
        else:
            runc = go_mod_lib_version("runc", K3S_REPO, milestone)

        sqlite = sqlite_version_binding(go_mod_lib_version("go-sqlite3", self.repo, milestone))
        self.sqlite_version = sqlite
        self.sqlite_version_replaced = sqlite.replace(".", "_")
        self.helm_controller_version = go_mod_lib_version("helm-controller", self.repo, milestone)
        self.coredns_version = image_tag_version("coredns", self.repo, milestone)

        self.kine_version = go_mod_lib_version("kine", K3S_REPO, milestone)
        self.etcd_version = go_mod_lib_version("etcd/api/v3", K3S_REPO, milestone)
        self.containerd_version = containerd
        self.runc_version = runc
        self.flannel_version = go_mod_lib_version("flannel", K3S_REPO, milestone)
        self.metrics_server_version = image_tag_version("metrics-server", K3S_REPO, milestone)
        self.traefik_version = image_tag_version("traefik", K3S_REPO, milestone)
        self.local_path_provisioner_version = image_tag_version(
            "local-path-provisioner", K3S_REPO, milestone
        )


@dataclass
class RKE2ReleaseNoteData(ReleaseNoteData):
    """Release note data for rke2, with component and chart versions."""

    repo: str = RKE2_REPO
    k8s_version: str = ""
    etcd_version: str = ""
    containerd_version: str = ""
    runc_version: str = ""
    metrics_server_version: str = ""
    coredns_version: str = ""
    ingress_nginx_version: str = ""
    helm_controller_version: str = ""
    flannel_version: str = ""
    canal_calico_version: str = ""
    canal_calico_url: str = ""
    calico_version: str = ""
    calico_url: str = ""
    cilium_version: str = ""
    multus_version: str = ""
    cilium_chart_version: str = ""
    canal_chart_version: str = ""
    calico_chart_version: str = ""
    calico_crd_chart_version: str = ""
    coredns_chart_version: str = ""
    ingress_nginx_chart_version: str = ""
    metrics_server_chart_version: str = ""
    vsphere_csi_chart_version: str = ""
    vsphere_cpi_chart_version: str = ""
    harvester_cloud_provider_chart_version: str = ""
    harvester_csi_driver_chart_version: str = ""
    snapshot_controller_chart_version: str = ""
    snapshot_controller_crd_chart_version: str = ""
    snapshot_validation_webhook_chart_version: str = ""

    template_name: ClassVar[str] = "rke2"

    def fill(self, milestone: str) -> None:
        """Look up the component and chart versions in the rke2 tree at ``milestone``."""
        super().fill(milestone)
        self.k8s_version = _k8s_version(milestone)
        self.helm_controller_version = go_mod_lib_version("helm-controller", self.repo, milestone)
        self.coredns_version = image_tag_version("coredns", self.repo, milestone)

        if self.major_minor == ALTERNATE_VERSION:
            containerd = go_mod_lib_version(
                CONTAINERD_V2_MOD_LIB, RKE2_REPO, milestone
            ) or go_mod_lib_version(CONTAINERD_MOD_LIB, RKE2_REPO, milestone)
        else:
            containerd = dockerfile_version("hardened-containerd", RKE2_REPO, milestone)

        self.etcd_version = build_script_version("ETCD_VERSION", RKE2_REPO, milestone)
        self.runc_version = dockerfile_version("hardened-runc", RKE2_REPO, milestone)
        self.canal_calico_version = image_tag_version("hardened-calico", RKE2_REPO, milestone)
        self.canal_calico_url = calico_url(self.canal_calico_version)
        self.cilium_version = image_tag_version("cilium-cilium", RKE2_REPO, milestone)
        self.containerd_version = containerd
        self.metrics_server_version = image_tag_version("metrics-server", RKE2_REPO, milestone)
        self.ingress_nginx_version = image_tag_version(
            "nginx-ingress-controller", RKE2_REPO, milestone
        )
        self.flannel_version = image_tag_version("flannel", RKE2_REPO, milestone)
        self.multus_version = image_tag_version("multus-cni", RKE2_REPO, milestone)
        self.calico_version = image_tag_version("calico-node", RKE2_REPO, milestone)
        self.calico_url = calico_url(self.calico_version)

        charts = rke2_charts_version(milestone)
        for attribute, filename in _RKE2_CHART_FILES.items():
            chart = charts.get(filename)
            setattr(self, attribute, chart.version if chart is not None else "")


_CHANGELOG_TEMPLATE = (
    "## Changes since {{ data.prev_milestone }}:\n"
    "{% for entry in data.changes %}"
    "\n* {{ entry.title | capitalize }} [(#{{ entry.number }})]({{ entry.url }})"
    "{% for line in entry.note.split('\\n') if line %}"
    "\n  * {{ line | capitalize }}"
    "{% endfor %}"
    "{% endfor %}"
)

_DEFAULT_TEMPLATE = "<!-- {{ data.milestone }} -->\n\n{% include 'changelog' %}\n"

_K3S_TEMPLATE = """<!-- {{ data.milestone }} -->

This release updates Kubernetes to {{ data.k8s_version }}, and fixes a number of issues.

For more details on what's new, see the [Kubernetes release notes](https://github.com/kubernetes/kubernetes/blob/master/CHANGELOG/CHANGELOG-{{ data.major_minor }}.md#changelog-since-{{ data.change_log_since }}).

{% include 'changelog' %}

## Embedded Component Versions
| Component | Version |
|---|---|
| Kubernetes | [{{ data.k8s_version }}](https://github.com/kubernetes/kubernetes/blob/master/CHANGELOG/CHANGELOG-{{ data.major_minor }}.md#{{ data.change_log_version }}) |
| Kine | [{{ data.kine_version }}](https://github.com/k3s-io/kine/releases/tag/{{ data.kine_version }}) |
| SQLite | [{{ data.sqlite_version }}](https://sqlite.org/releaselog/{{ data.sqlite_version_replaced }}.html) |
| Etcd | [{{ data.etcd_version }}](https://github.com/k3s-io/etcd/releases/tag/{{ data.etcd_version }}) |
| Containerd | [{{ data.containerd_version }}](https://github.com/k3s-io/containerd/releases/tag/{{ data.containerd_version }}) |
| Runc | [{{ data.runc_version }}](https://github.com/opencontainers/runc/releases/tag/{{ data.runc_version }}) |
| Flannel | [{{ data.flannel_version }}](https://github.com/flannel-io/flannel/releases/tag/{{ data.flannel_version }}) | 
| Metrics-server | [{{ data.metrics_server_version }}](https://github.com/kubernetes-sigs/metrics-server/releases/tag/{{ data.metrics_server_version }}) |
| Traefik | [v{{ data.traefik_version }}](https://github.com/traefik/traefik/releases/tag/v{{ data.traefik_version }}) |
| CoreDNS | [v{{ data.coredns_version }}](https://github.com/coredns/coredns/releases/tag/v{{ data.coredns_version }}) | 
| Helm-controller | [{{ data.helm_controller_version }}](https://github.com/k3s-io/helm-controller/releases/tag/{{ data.helm_controller_version }}) |
| Local-path-provisioner | [{{ data.local_path_provisioner_version }}](https://github.com/rancher/local-path-provisioner/releases/tag/{{ data.local_path_provisioner_version }}) |

## Helpful Links
As always, we welcome and appreciate feedback from our community of users. Please feel free to:
- [Open issues here](https://github.com/rancher/k3s/issues/new/choose)
- [Join our Slack channel](https://slack.rancher.io/)
- [Check out our documentation](https://rancher.com/docs/k3s/latest/en/) for guidance on how to get started or to dive deep into K3s.
- [Read how you can contribute here](https://github.com/rancher/k3s/blob/master/CONTRIBUTING.md)
"""

_CHARTS_BASE = "https://github.com/rancher/rke2-charts/raw/main/assets"

_RKE2_TEMPLATE = (
    """<!-- {{ data.milestone }} -->

This release updates Kubernetes to {{ data.k8s_version }}.

**Important Note**

If your server (control-plane) nodes were not started with the `--token` CLI flag or config file key, a randomized token was generated during initial cluster startup. This key is used both for joining new nodes to the cluster, and for encrypting cluster bootstrap data within the datastore. Ensure that you retain a copy of this token, as is required when restoring from backup.

You may retrieve the token value from any server already joined to the cluster:
```bash
cat /var/lib/rancher/rke2/server/token
```

{% include 'changelog' %}


## Charts Versions
| Component | Version |
| --- | --- |
| rke2-cilium | [{{ data.cilium_chart_version }}](CHARTS/rke2-cilium/rke2-cilium-{{ data.cilium_chart_version }}.tgz) |
| rke2-canal | [{{ data.canal_chart_version }}](CHARTS/rke2-canal/rke2-canal-{{ data.canal_chart_version }}.tgz) |
| rke2-calico | [{{ data.calico_chart_version }}](CHARTS/rke2-calico/rke2-calico-{{ data.calico_chart_version }}.tgz) |
| rke2-calico-crd | [{{ data.calico_crd_chart_version }}](CHARTS/rke2-calico/rke2-calico-crd-{{ data.calico_crd_chart_version }}.tgz) |
| rke2-coredns | [{{ data.coredns_chart_version }}](CHARTS/rke2-coredns/rke2-coredns-{{ data.coredns_chart_version }}.tgz) |
| rke2-ingress-nginx | [{{ data.ingress_nginx_chart_version }}](CHARTS/rke2-ingress-nginx/rke2-ingress-nginx-{{ data.ingress_nginx_chart_version }}.tgz) |
| rke2-metrics-server | [{{ data.metrics_server_chart_version }}](CHARTS/rke2-metrics-server/rke2-metrics-server-{{ data.metrics_server_chart_version }}.tgz) |
| rancher-vsphere-csi | [{{ data.vsphere_csi_chart_version }}](CHARTS/rancher-vsphere-csi/rancher-vsphere-csi-{{ data.vsphere_csi_chart_version }}.tgz) |
| rancher-vsphere-cpi | [{{ data.vsphere_cpi_chart_version }}](CHARTS/rancher-vsphere-cpi/rancher-vsphere-cpi-{{ data.vsphere_cpi_chart_version }}.tgz) |
| harvester-cloud-provider | [{{ data.harvester_cloud_provider_chart_version }}](CHARTS/harvester-cloud-provider/harvester-cloud-provider-{{ data.harvester_cloud_provider_chart_version }}.tgz) |
| harvester-csi-driver | [{{ data.harvester_csi_driver_chart_version }}](CHARTS/harvester-cloud-provider/harvester-csi-driver-{{ data.harvester_csi_driver_chart_version }}.tgz) |
| rke2-snapshot-controller | [{{ data.snapshot_controller_chart_version }}](CHARTS/rke2-snapshot-controller/rke2-snapshot-controller-{{ data.snapshot_controller_chart_version }}.tgz) |
| rke2-snapshot-controller-crd | [{{ data.snapshot_controller_crd_chart_version }}](CHARTS/rke2-snapshot-controller/rke2-snapshot-controller-crd-{{ data.snapshot_controller_crd_chart_version }}.tgz) |
| rke2-snapshot-validation-webhook | [{{ data.snapshot_validation_webhook_chart_version }}](CHARTS/rke2-snapshot-validation-webhook/rke2-snapshot-validation-webhook-{{ data.snapshot_validation_webhook_chart_version }}.tgz) |


## Packaged Component Versions
| Component | Version |
| --- | --- |
| Kubernetes | [{{ data.k8s_version }}](https://github.com/kubernetes/kubernetes/blob/master/CHANGELOG/CHANGELOG-{{ data.major_minor }}.md#{{ data.change_log_version }}) |
| Etcd | [{{ data.etcd_version }}](https://github.com/k3s-io/etcd/releases/tag/{{ data.etcd_version }}) |
| Containerd | [{{ data.containerd_version }}](https://github.com/k3s-io/containerd/releases/tag/{{ data.containerd_version }}) |
| Runc | [{{ data.runc_version }}](https://github.com/opencontainers/runc/releases/tag/{{ data.runc_version }}) |
| Metrics-server | [{{ data.metrics_server_version }}](https://github.com/kubernetes-sigs/metrics-server/releases/tag/{{ data.metrics_server_version }}) |
| CoreDNS | [{{ data.coredns_version }}](https://github.com/coredns/coredns/releases/tag/{{ data.coredns_version }}) |
| Ingress-Nginx | [{{ data.ingress_nginx_version }}](https://github.com/rancher/ingress-nginx/releases/tag/{{ data.ingress_nginx_version }}) |
| Helm-controller | [{{ data.helm_controller_version }}](https://github.com/k3s-io/helm-controller/releases/tag/{{ data.helm_controller_version }}) |

### Available CNIs
| Component | Version | FIPS Compliant |
| --- | --- | --- |
| Canal (Default) | [Flannel {{ data.flannel_version }}](https://github.com/flannel-io/flannel/releases/tag/{{ data.flannel_version }})<br/>[Calico {{ data.canal_calico_version }}]({{ data.canal_calico_url }}) | Yes |
| Calico | [{{ data.calico_version }}]({{ data.calico_url }}) | No |
| Cilium | [{{ data.cilium_version }}](https://github.com/cilium/cilium/releases/tag/{{ data.cilium_version }}) | No |
| Multus | [{{ data.multus_version }}](https://github.com/k8snetworkplumbingwg/multus-cni/releases/tag/{{ data.multus_version }}) | No |

## Helpful Links

As always, we welcome and appreciate feedback from our community of users. Please feel free to:
- [Open issues here](https://github.com/rancher/rke2/issues/new)
- [Join our Slack channel](https://slack.rancher.io/)
- [Check out our documentation](https://docs.rke2.io) for guidance on how to get started.
"""
).replace("(CHARTS/", "(" + _CHARTS_BASE + "/")


def _environment() -> Environment:
    env = Environment(
        loader=DictLoader(
            {
                "changelog": _CHANGELOG_TEMPLATE,
                "default": _DEFAULT_TEMPLATE,
                "k3s": _K3S_TEMPLATE,
                "rke2": _RKE2_TEMPLATE,
            }
        ),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["capitalize"] = capitalize
    env.filters["maj_min"] = maj_min
    env.filters["trim_periods"] = trim_periods
    return env


_ENV = _environment()


def render_release_notes(data: ReleaseNoteData) -> str:
    """Render the Markdown release notes for already filled ``data``."""
    return _ENV.get_template(data.template_name).render(data=data)


def gen_release_notes(
    client: GitHubClient, owner: str, repo: str, milestone: str, prev_milestone: str
) -> str:
    """Generate the release notes for ``milestone`` of ``repo`` since ``prev_milestone``."""
    data: ReleaseNoteData
    if repo == K3S_REPO:
        data = K3sReleaseNoteData(
            change_log_since=prev_milestone.split("+")[0].replace(".", "")
        )
    elif repo == RKE2_REPO:
        data = RKE2ReleaseNoteData()
    elif repo in GENERIC_REPOS:
        data = ReleaseNoteData(repo=repo)
    else:
        raise ValueError(
            "invalid repo: it must be k3s, rke2, ui, dashboard or cli, received " + repo
        )

    data.prev_milestone = prev_milestone
    data.changes = retrieve_changelog_contents(client, owner, repo, prev_milestone, milestone)
    data.fill(milestone)
    return render_release_notes(data)