"""
Capabilities consumed by the Layout component.

The Layout is written against these protocols only; the on-disk layout
(layoutpath.py) and the registry client (client.py) are the production
implementations, and tests substitute fakes.
"""

from abc import abstractmethod
from typing import BinaryIO, Protocol, runtime_checkable

from .image import Digest, Name
from .manifest import Descriptor, IndexManifest


@runtime_checkable
class Image(Protocol):
    """A single-platform image manifest and access to its blobs."""

    digest: Digest
    media_type: str

    @abstractmethod
    def raw_manifest(self) -> bytes:
        """Return the manifest exactly as stored."""
        ...

    @abstractmethod
    def config(self) -> Descriptor:
        ...

    @abstractmethod
    def layers(self) -> list[Descriptor]:
        ...

    @abstractmethod
    def open_blob(self, digest: Digest) -> BinaryIO:
        """Open a blob referenced by the manifest for reading."""
        ...


@runtime_checkable
class ImageIndex(Protocol):
    """
    An index manifest with lookup of its children by digest.

    image() and image_index() raise when the digest does not name a child of
    the expected kind. Callers treat any exception they raise as "not found",
    whatever its type.
    """

    media_type: str

    @abstractmethod
    def raw_manifest(self) -> bytes:
        ...

    @abstractmethod
    def index_manifest(self) -> IndexManifest:
        ...

    @abstractmethod
    def image(self, digest: Digest) -> Image:
        ...

    @abstractmethod
    def image_index(self, digest: Digest) -> "ImageIndex":
        ...


@runtime_checkable
class LayoutPath(Protocol):
    """Root of an OCI image layout."""

    @abstractmethod
    def image_index(self) -> ImageIndex:
        """Open the layout and return its top-level index."""
        ...


@runtime_checkable
class WritableLayoutPath(LayoutPath, Protocol):
    """A layout path that new content can be added to."""

    @abstractmethod
    def has_blob(self, digest: Digest) -> bool:
        ...

    @abstractmethod
    def write_blob(self, data: bytes, algorithm: str = "sha256") -> Digest:
        ...

    @abstractmethod
    def write_blob_stream(self, digest: Digest, chunks) -> int:
        """Write a blob from an iterable of byte chunks, verifying its digest."""
        ...

    @abstractmethod
    def replace_descriptor(self, descriptor: Descriptor) -> None:
        """Add a top-level descriptor, replacing any with the same ref name."""
        ...


@runtime_checkable
class Artifact(Protocol):
    """Something that can be pushed to a registry."""

    @abstractmethod
    def write(self, target: Name) -> tuple[Digest, int]:
        """Push to target and return the manifest digest and size."""
        ...


@runtime_checkable
class RemoteArtifact(Protocol):
    """A manifest or index read from a registry."""

    descriptor: Descriptor

    @abstractmethod
    def save(self, path: WritableLayoutPath) -> Descriptor:
        """Copy the artifact and everything it references into a layout."""
        ...


@runtime_checkable
class RegistryClient(Protocol):
    """Constructs pushable artifacts and reads artifacts from registries."""

    @abstractmethod
    def new_image_from_manifest(self, image: Image) -> Artifact:
        ...

    @abstractmethod
    def new_image_from_index(self, index: ImageIndex) -> Artifact:
        ...

    @abstractmethod
    def read(self, name: Name) -> RemoteArtifact:
        ...
