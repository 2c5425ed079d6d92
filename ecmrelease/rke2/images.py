"""Collecting the images an RKE2 release lists for each of its platforms."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"

LIST_LINUX_AMD64 = "rke2-images-all.linux-amd64.txt"
LIST_LINUX_ARM64 = "rke2-images-all.linux-arm64.txt"
LIST_WINDOWS_AMD64 = "rke2-images.windows-amd64.txt"

_TAG = re.compile(r"[A-Za-z0-9_.-]{1,128}")
_REPOSITORY = re.compile(r"[a-z0-9_./-]{2,255}")
_REGISTRY = re.compile(r"[A-Za-z0-9.-]+(?::[0-9]+)?")
_DIGEST = re.compile(r"sha256:[0-9a-f]{64}")

Assets = Union[Mapping[str, Union[bytes, str]], str, "os.PathLike[str]"]


class Architecture(str, Enum):
    """A platform an RKE2 release ships images for."""

    LINUX_AMD64 = "linux/amd64"
    LINUX_ARM64 = "linux/arm64"
    WINDOWS_AMD64 = "windows/amd64"


IMAGE_LISTS = {
    Architecture.LINUX_AMD64: LIST_LINUX_AMD64,
    Architecture.LINUX_ARM64: LIST_LINUX_ARM64,
    Architecture.WINDOWS_AMD64: LIST_WINDOWS_AMD64,
}


@dataclass(frozen=True)
class ImageReference:
    """A parsed container image reference, by tag or by digest."""

    registry: str
    repository: str
    tag: str = ""
    digest: str = ""

    @property
    def identifier(self) -> str:
        """The digest when there is one, otherwise the tag."""
        return self.digest or self.tag

    @property
    def key(self) -> str:
        """The repository and identifier joined by a colon."""
        return f"{self.repository}:{self.identifier}"

    def __str__(self) -> str:
        name = f"{self.registry}/{self.repository}"
        if self.digest:
            return f"{name}@{self.digest}"
        return f"{name}:{self.tag}"


def _split_registry(name: str) -> tuple[str, str]:
    parts = name.split("/", 1)
    if len(parts) == 2 and ("." in parts[0] or ":" in parts[0]):
        return parts[0], parts[1]
    return "", name


def parse_reference(image: str) -> ImageReference:
    """Parse an image reference such as ``rancher/foo:v1`` or ``gcr.io/x/y@sha256:...``."""
    if not image:
        raise ValueError("empty image reference")

    base, digest = image, ""
    if "@" in image:
        parts = image.split("@")
        if len(parts) != 2:
            raise ValueError(f"invalid digest reference: {image!r}")
        base, digest = parts
        if not _DIGEST.fullmatch(digest):
            raise ValueError(f"invalid digest {digest!r} in {image!r}")

    tag = ""
    colon, slash = base.rfind(":"), base.rfind("/")
    if colon > slash:
        base, tag = base[:colon], base[colon + 1:]
        if not _TAG.fullmatch(tag):
            raise ValueError(f"invalid tag {tag!r} in {image!r}")
    if digest:
        tag = ""
    elif not tag:
        tag = DEFAULT_TAG

    registry, repository = _split_registry(base)
    if not _REPOSITORY.fullmatch(repository):
        raise ValueError(f"invalid repository {repository!r} in {image!r}")
    if registry and not _REGISTRY.fullmatch(registry):
        raise ValueError(f"invalid registry {registry!r} in {image!r}")
    if not registry or registry == "docker.io":
        registry = DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = "library/" + repository

    return ImageReference(registry, repository, tag, digest)


@dataclass
class ReleaseImage:
    """An image listed for one or more platforms of an RKE2 release."""

    reference: ImageReference | None = None
    expects_linux_amd64: bool = False
    expects_linux_arm64: bool = False
    expects_windows: bool = False

    def expect(self, arch: Architecture) -> None:
        """Mark the image as expected on ``arch``."""
        if arch is Architecture.LINUX_AMD64:
            self.expects_linux_amd64 = True
        elif arch is Architecture.LINUX_ARM64:
            self.expects_linux_arm64 = True
        elif arch is Architecture.WINDOWS_AMD64:
            self.expects_windows = True


class ReleaseInspector:
    """Reads the image lists of an RKE2 release from its assets.

    ``assets`` is either a mapping of file names to contents or a directory.
    """

    def __init__(
        self,
        assets: Assets,
        oss: Any = None,
        prime: Any = None,
        debug: bool = False,
    ) -> None:
        self.assets = assets
        self.oss = oss
        self.prime = prime
        self.debug = debug

    def _read(self, filename: str) -> str:
        if isinstance(self.assets, Mapping):
            try:
                content = self.assets[filename]
            except KeyError:
                raise FileNotFoundError(filename) from None
        else:
            content = (Path(self.assets) / filename).read_bytes()
        if isinstance(content, bytes):
            return content.decode("utf-8")
        return content

    def read_image_list(self, filename: str) -> list[str]:
        """Return the lines of an image list file."""
        return self._read(filename).strip().split("\n")

    def image_map(self) -> dict[str, ReleaseImage]:
        """Merge the per-platform image lists into one map keyed by repository:identifier."""
        lists = {arch: self.read_image_list(name) for arch, name in IMAGE_LISTS.items()}

        images: dict[str, ReleaseImage] = {}
        for arch, lines in lists.items():
            for line in lines:
                if not line:
                    continue
                try:
                    ref = parse_reference(line)
                except ValueError:
                    continue
                info = images.setdefault(ref.key, ReleaseImage())
                info.reference = ref
                info.expect(arch)
        return images