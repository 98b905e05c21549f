"""Shared fixtures: on-disk OCI layouts populated with small images and indexes."""

import json

import pytest

from relocation.layoutpath import OciLayoutPath
from relocation.manifest import (
    OCI_INDEX,
    OCI_MANIFEST,
    REF_NAME_ANNOTATION,
    Descriptor,
)

CONFIG_MEDIA_TYPE = "application/vnd.oci.image.config.v1+json"
LAYER_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar+gzip"


@pytest.fixture
def oci_layout(tmp_path) -> OciLayoutPath:
    """An empty OCI layout in a temporary directory."""
    return OciLayoutPath.create(tmp_path / "layout")


@pytest.fixture
def make_image(oci_layout):
    """Factory writing an image (config, one layer, manifest) into the layout.

    Returns the manifest's Descriptor. Pass ref_name to also record it as a
    top-level entry in index.json.
    """

    def _make_image(layer: bytes = b"layer-data", ref_name: str | None = None) -> Descriptor:
        config = json.dumps({"architecture": "amd64", "os": "linux"}).encode("utf-8")
        config_digest = oci_layout.write_blob(config)
        layer_digest = oci_layout.write_blob(layer)
        manifest = {
            "schemaVersion": 2,
            "mediaType": OCI_MANIFEST,
            "config": {
                "mediaType": CONFIG_MEDIA_TYPE,
                "digest": str(config_digest),
                "size": len(config),
            },
            "layers": [
                {
                    "mediaType": LAYER_MEDIA_TYPE,
                    "digest": str(layer_digest),
                    "size": len(layer),
                }
            ],
        }
        raw = json.dumps(manifest).encode("utf-8")
        digest = oci_layout.write_blob(raw)
        annotations = {REF_NAME_ANNOTATION: ref_name} if ref_name else {}
        descriptor = Descriptor(OCI_MANIFEST, digest, len(raw), annotations=annotations)
        if ref_name:
            oci_layout.replace_descriptor(descriptor)
        return descriptor

    return _make_image


@pytest.fixture
def make_index(oci_layout):
    """Factory writing an image index over the given child descriptors."""

    def _make_index(children: list, ref_name: str | None = None) -> Descriptor:
        index = {
            "schemaVersion": 2,
            "mediaType": OCI_INDEX,
            "manifests": [child.to_dict() for child in children],
        }
        raw = json.dumps(index).encode("utf-8")
        digest = oci_layout.write_blob(raw)
        annotations = {REF_NAME_ANNOTATION: ref_name} if ref_name else {}
        descriptor = Descriptor(OCI_INDEX, digest, len(raw), annotations=annotations)
        if ref_name:
            oci_layout.replace_descriptor(descriptor)
        return descriptor

    return _make_index
