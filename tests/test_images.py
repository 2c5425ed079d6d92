import pytest

from ecmrelease.rke2.images import (
    LIST_LINUX_AMD64,
    LIST_LINUX_ARM64,
    LIST_WINDOWS_AMD64,
    Architecture,
    ImageReference,
    ReleaseImage,
    ReleaseInspector,
    parse_reference,
)


def mock_fs():
    return {
        LIST_LINUX_AMD64: b"rancher/rke2-runtime:v1.23.4-rke2r1\nrancher/rke2-cloud-provider:v1.23.4-rke2r1",
        LIST_LINUX_ARM64: b"rancher/rke2-runtime:v1.23.4-rke2r1",
        LIST_WINDOWS_AMD64: b"rancher/rke2-runtime-windows:v1.23.4-rke2r1",
    }


def test_image_map():
    images = ReleaseInspector(mock_fs(), None, None, False).image_map()
    expected = {
        "rancher/rke2-runtime:v1.23.4-rke2r1": (True, True, False),
        "rancher/rke2-cloud-provider:v1.23.4-rke2r1": (True, False, False),
        "rancher/rke2-runtime-windows:v1.23.4-rke2r1": (False, False, True),
    }
    assert set(images) == set(expected)
    for name, (amd64, arm64, win) in expected.items():
        image = images[name]
        assert image.expects_linux_amd64 is amd64
        assert image.expects_linux_arm64 is arm64
        assert image.expects_windows is win


def test_image_map_reference():
    images = ReleaseInspector(mock_fs()).image_map()
    ref = images["rancher/rke2-runtime:v1.23.4-rke2r1"].reference
    assert ref == ImageReference("index.docker.io", "rancher/rke2-runtime", "v1.23.4-rke2r1")


def test_read_image_list():
    inspector = ReleaseInspector(mock_fs(), None, None, False)
    assert inspector.read_image_list("rke2-images-all.linux-amd64.txt") == [
        "rancher/rke2-runtime:v1.23.4-rke2r1",
        "rancher/rke2-cloud-provider:v1.23.4-rke2r1",
    ]


def test_read_nonexistent_file():
    inspector = ReleaseInspector(mock_fs(), None, None, False)
    with pytest.raises(FileNotFoundError):
        inspector.read_image_list("fake.txt")


def test_read_image_list_trims_whitespace():
    inspector = ReleaseInspector({"list.txt": "\n a:1\nb:2\n\n"})
    assert inspector.read_image_list("list.txt") == ["a:1", "b:2"]


def test_read_image_list_from_directory(tmp_path):
    (tmp_path / "list.txt").write_text("rancher/a:v1\nrancher/b:v2\n")
    inspector = ReleaseInspector(tmp_path)
    assert inspector.read_image_list("list.txt") == ["rancher/a:v1", "rancher/b:v2"]


def test_image_map_missing_list_raises():
    assets = mock_fs()
    del assets[LIST_WINDOWS_AMD64]
    with pytest.raises(FileNotFoundError):
        ReleaseInspector(assets).image_map()


def test_image_map_skips_blank_and_invalid_lines():
    assets = {
        LIST_LINUX_AMD64: "rancher/a:v1\n\nNOT/Valid:v1\nrancher/b:v2",
        LIST_LINUX_ARM64: "",
        LIST_WINDOWS_AMD64: "rancher/a:v1",
    }
    images = ReleaseInspector(assets).image_map()
    assert sorted(images) == ["rancher/a:v1", "rancher/b:v2"]
    assert images["rancher/a:v1"].expects_windows is True
    assert images["rancher/b:v2"].expects_windows is False


def test_parse_reference_defaults():
    ref = parse_reference("busybox")
    assert ref.registry == "index.docker.io"
    assert ref.repository == "library/busybox"
    assert ref.identifier == "latest"
    assert str(ref) == "index.docker.io/library/busybox:latest"


def test_parse_reference_registry():
    ref = parse_reference("gcr.io/project/image:1.0")
    assert ref.registry == "gcr.io"
    assert ref.repository == "project/image"
    assert ref.tag == "1.0"


def test_parse_reference_registry_with_port():
    ref = parse_reference("localhost:5000/img:v2")
    assert ref.registry == "localhost:5000"
    assert ref.repository == "img"
    assert ref.key == "img:v2"


def test_parse_reference_docker_io_normalised():
    ref = parse_reference("docker.io/nginx:1.25")
    assert ref.registry == "index.docker.io"
    assert ref.repository == "library/nginx"


def test_parse_reference_digest():
    digest = "sha256:" + "a" * 64
    ref = parse_reference("rancher/img@" + digest)
    assert ref.digest == digest
    assert ref.tag == ""
    assert ref.identifier == digest
    assert str(ref) == "index.docker.io/rancher/img@" + digest


@pytest.mark.parametrize(
    "image",
    ["", "Rancher/Upper:v1", "rancher/img:bad tag", "rancher/img@sha256:short", "a@b@c", "x:v1"],
)
def test_parse_reference_invalid(image):
    with pytest.raises(ValueError):
        parse_reference(image)


def test_release_image_expect():
    image = ReleaseImage()
    image.expect(Architecture.LINUX_ARM64)
    assert (image.expects_linux_amd64, image.expects_linux_arm64, image.expects_windows) == (
        False,
        True,
        False,
    )


def test_architecture_values():
    assert Architecture("windows/amd64") is Architecture.WINDOWS_AMD64