"""
OCI manifest data types.

Descriptors and index manifests as read from an image layout's index.json
or from an image index blob.
"""

import json
from dataclasses import dataclass, field

from .errors import ManifestReadError
from .image import Digest

REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"

OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

IMAGE_MEDIA_TYPES = (OCI_MANIFEST, DOCKER_MANIFEST)
INDEX_MEDIA_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)

NON_DISTRIBUTABLE_MEDIA_TYPES = (
    "application/vnd.oci.image.layer.nondistributable.v1.tar",
    "application/vnd.oci.image.layer.nondistributable.v1.tar+gzip",
    "application/vnd.oci.image.layer.nondistributable.v1.tar+zstd",
    "application/vnd.docker.image.rootfs.foreign.diff.tar.gzip",
)


def is_index(media_type: str | None) -> bool:
    return media_type in INDEX_MEDIA_TYPES


def is_distributable(media_type: str | None) -> bool:
    return media_type not in NON_DISTRIBUTABLE_MEDIA_TYPES


@dataclass(frozen=True)
class Descriptor:
    """A digest plus the metadata needed to fetch and interpret the content."""

    media_type: str
    digest: Digest
    size: int
    annotations: dict = field(default_factory=dict)
    platform: dict | None = None
    urls: list | None = None

    @property
    def ref_name(self) -> str | None:
        return self.annotations.get(REF_NAME_ANNOTATION)

    @classmethod
    def from_dict(cls, data: dict) -> "Descriptor":
        try:
            return cls(
                media_type=data.get("mediaType", ""),
                digest=Digest(data["digest"]),
                size=int(data.get("size", 0)),
                annotations=dict(data.get("annotations") or {}),
                platform=data.get("platform"),
                urls=data.get("urls"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ManifestReadError(f"invalid descriptor {data!r}: {e}") from e

    def to_dict(self) -> dict:
        data = {
            "mediaType": self.media_type,
            "digest": str(self.digest),
            "size": self.size,
        }
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.platform:
            data["platform"] = self.platform
        if self.urls:
            data["urls"] = self.urls
        return data


@dataclass(frozen=True)
class IndexManifest:
    """
    An ordered list of descriptors.

    Used both for the top-level index.json of a layout and for image
    index (multi-platform) blobs.
    """

    manifests: list = field(default_factory=list)
    schema_version: int = 2
    media_type: str | None = OCI_INDEX
    annotations: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "IndexManifest":
        if not isinstance(data, dict):
            raise ManifestReadError("index manifest must be a JSON object")
        manifests = data.get("manifests") or []
        if not isinstance(manifests, list):
            raise ManifestReadError("index manifest 'manifests' must be a list")
        return cls(
            manifests=[Descriptor.from_dict(m) for m in manifests],
            schema_version=data.get("schemaVersion", 2),
            media_type=data.get("mediaType"),
            annotations=dict(data.get("annotations") or {}),
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> "IndexManifest":
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ManifestReadError(f"index manifest is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        data = {"schemaVersion": self.schema_version}
        if self.media_type:
            data["mediaType"] = self.media_type
        data["manifests"] = [m.to_dict() for m in self.manifests]
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    def find(self, digest: Digest) -> Descriptor | None:
        """Return the first descriptor with the given digest, if any."""
        for descriptor in self.manifests:
            if descriptor.digest == digest:
                return descriptor
        return None
