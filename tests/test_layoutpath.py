"""Tests for the on-disk OCI image layout."""

import json

import pytest

from relocation.errors import (
    DescriptorNotFoundError,
    DigestMismatchError,
    LayoutAccessError,
    ManifestReadError,
    UnexpectedMediaTypeError,
)
from relocation.image import Digest
from relocation.layoutpath import OciLayoutPath
from relocation.manifest import OCI_MANIFEST, REF_NAME_ANNOTATION, Descriptor

MISSING = Digest("sha256:" + "1" * 64)


class TestOpen:
    def test_create_writes_layout_files(self, tmp_path):
        path = OciLayoutPath.create(tmp_path / "new")

        assert json.loads((tmp_path / "new" / "oci-layout").read_text()) == {"imageLayoutVersion": "1.0.0"}
        assert path.image_index().index_manifest().manifests == []

    def test_create_keeps_existing_entries(self, oci_layout, make_image):
        descriptor = make_image(ref_name="testimage")

        reopened = OciLayoutPath.create(oci_layout.root)

        assert reopened.image_index().index_manifest().manifests == [descriptor]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(LayoutAccessError):
            OciLayoutPath(tmp_path / "absent").image_index()

    def test_missing_layout_marker(self, tmp_path):
        with pytest.raises(LayoutAccessError):
            OciLayoutPath(tmp_path).image_index()

    def test_corrupt_layout_marker(self, oci_layout):
        (oci_layout.root / "oci-layout").write_text("{not json")

        with pytest.raises(LayoutAccessError):
            oci_layout.image_index()

    def test_corrupt_index_manifest(self, oci_layout):
        (oci_layout.root / "index.json").write_text("[]")
        index = oci_layout.image_index()

        with pytest.raises(ManifestReadError):
            index.index_manifest()

    def test_missing_index_manifest(self, oci_layout):
        (oci_layout.root / "index.json").unlink()
        index = oci_layout.image_index()

        with pytest.raises(ManifestReadError):
            index.index_manifest()


class TestLookup:
    def test_image_lookup(self, oci_layout, make_image):
        descriptor = make_image(layer=b"hello layer", ref_name="testimage")

        image = oci_layout.image_index().image(descriptor.digest)

        assert image.digest == descriptor.digest
        assert image.media_type == OCI_MANIFEST
        assert image.config().media_type == "application/vnd.oci.image.config.v1+json"
        [layer] = image.layers()
        assert layer.size == len(b"hello layer")
        with image.open_blob(layer.digest) as f:
            assert f.read() == b"hello layer"

    def test_index_lookup_and_nested_image(self, oci_layout, make_image, make_index):
        child = make_image()
        descriptor = make_index([child], ref_name="multiarch")

        index = oci_layout.image_index().image_index(descriptor.digest)

        assert index.index_manifest().manifests == [child]
        assert index.image(child.digest).digest == child.digest
        assert index.raw_manifest() == oci_layout.blob_path(descriptor.digest).read_bytes()

    def test_image_lookup_of_index_fails(self, oci_layout, make_image, make_index):
        descriptor = make_index([make_image()], ref_name="multiarch")

        with pytest.raises(UnexpectedMediaTypeError):
            oci_layout.image_index().image(descriptor.digest)

    def test_index_lookup_of_image_fails(self, oci_layout, make_image):
        descriptor = make_image(ref_name="testimage")

        with pytest.raises(UnexpectedMediaTypeError):
            oci_layout.image_index().image_index(descriptor.digest)

    def test_unknown_digest(self, oci_layout, make_image):
        make_image(ref_name="testimage")
        index = oci_layout.image_index()

        with pytest.raises(DescriptorNotFoundError) as exc_info:
            index.image(MISSING)

        assert str(exc_info.value) == f"could not find descriptor in index: {MISSING}"
        with pytest.raises(DescriptorNotFoundError):
            index.image_index(MISSING)

    def test_corrupt_manifest_blob(self, oci_layout, make_image):
        descriptor = make_image(ref_name="testimage")
        oci_layout.blob_path(descriptor.digest).write_bytes(b"{}")

        image = oci_layout.image_index().image(descriptor.digest)

        with pytest.raises(ManifestReadError):
            image.raw_manifest()


class TestWrite:
    def test_write_blob_is_content_addressed(self, oci_layout):
        digest = oci_layout.write_blob(b"hello")

        assert str(digest) == "sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        assert oci_layout.has_blob(digest)
        assert oci_layout.read_blob(digest) == b"hello"

    def test_write_blob_stream(self, oci_layout):
        digest = Digest.of(b"hello world")

        size = oci_layout.write_blob_stream(digest, [b"hello ", b"world"])

        assert size == 11
        assert oci_layout.read_blob(digest) == b"hello world"

    def test_write_blob_stream_rejects_mismatch(self, oci_layout):
        digest = Digest.of(b"expected")

        with pytest.raises(DigestMismatchError):
            oci_layout.write_blob_stream(digest, [b"something else"])

        assert not oci_layout.has_blob(digest)
        assert list(oci_layout.blob_path(digest).parent.iterdir()) == []

    def test_replace_descriptor_replaces_same_name(self, oci_layout, make_image):
        first = make_image(layer=b"one", ref_name="testimage")
        other = make_image(layer=b"two", ref_name="other")
        second = make_image(layer=b"three", ref_name="testimage")

        manifests = oci_layout.image_index().index_manifest().manifests

        assert first not in manifests
        assert manifests == [other, second]

    def test_replace_descriptor_without_name_appends(self, oci_layout, make_image):
        named = make_image(ref_name="testimage")
        unnamed = Descriptor(OCI_MANIFEST, MISSING, 1)

        oci_layout.replace_descriptor(unnamed)

        manifests = oci_layout.image_index().index_manifest().manifests
        assert manifests == [named, unnamed]
        assert manifests[0].annotations == {REF_NAME_ANNOTATION: "testimage"}
