"""
On-disk OCI image layout.

Implements the LayoutPath and ImageIndex capabilities over a directory laid
out in the OCI image-layout format:

    <root>/oci-layout                {"imageLayoutVersion": "1.0.0"}
    <root>/index.json                top-level index manifest
    <root>/blobs/<alg>/<hex>         content-addressed manifests and layers

Nothing is cached: every call reads the files afresh.
"""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import (
    DescriptorNotFoundError,
    DigestMismatchError,
    LayoutAccessError,
    ManifestReadError,
    UnexpectedMediaTypeError,
)
from .image import Digest
from .manifest import (
    IMAGE_MEDIA_TYPES,
    INDEX_MEDIA_TYPES,
    OCI_INDEX,
    Descriptor,
    IndexManifest,
)

logger = logging.getLogger(__name__)

OCI_LAYOUT_FILE = "oci-layout"
INDEX_FILE = "index.json"
BLOBS_DIR = "blobs"
LAYOUT_VERSION = "1.0.0"


class OciLayoutPath:
    """Root directory of an OCI image layout."""

    def __init__(self, root):
        self.root = Path(root)

    def __repr__(self):
        return f"OciLayoutPath({str(self.root)!r})"

    @classmethod
    def create(cls, root) -> "OciLayoutPath":
        """
        Create an empty layout at root, or open it if one already exists.

        Raises:
            LayoutAccessError: if the directory cannot be created or written
        """
        path = cls(root)
        try:
            (path.root / BLOBS_DIR).mkdir(parents=True, exist_ok=True)
            layout_file = path.root / OCI_LAYOUT_FILE
            if not layout_file.exists():
                path._write_atomic(
                    layout_file,
                    json.dumps({"imageLayoutVersion": LAYOUT_VERSION}).encode("utf-8"),
                )
            index_file = path.root / INDEX_FILE
            if not index_file.exists():
                path._write_atomic(
                    index_file,
                    json.dumps(IndexManifest().to_dict(), indent=2).encode("utf-8"),
                )
        except OSError as e:
            raise LayoutAccessError(f"cannot create layout at {path.root}: {e}") from e

        logger.info(f"Created OCI layout at {path.root}")
        return path

    def image_index(self) -> "LayoutImageIndex":
        """
        Open the layout and return its top-level index.

        Raises:
            LayoutAccessError: if root is not a readable OCI image layout
        """
        layout_file = self.root / OCI_LAYOUT_FILE
        if not self.root.is_dir():
            raise LayoutAccessError(f"layout directory {self.root} does not exist")
        try:
            layout = json.loads(layout_file.read_bytes())
        except OSError as e:
            raise LayoutAccessError(f"cannot read {layout_file}: {e}") from e
        except ValueError as e:
            raise LayoutAccessError(f"{layout_file} is not valid JSON: {e}") from e

        if not isinstance(layout, dict) or "imageLayoutVersion" not in layout:
            raise LayoutAccessError(f"{layout_file} has no imageLayoutVersion")

        logger.debug(f"Opened OCI layout {self.root} (version {layout['imageLayoutVersion']})")
        return LayoutImageIndex(self)

    # -------------------------------
    # Blobs
    # -------------------------------

    def blob_path(self, digest: Digest) -> Path:
        return self.root / BLOBS_DIR / digest.algorithm / digest.hex

    def has_blob(self, digest: Digest) -> bool:
        return self.blob_path(digest).is_file()

    def read_blob(self, digest: Digest) -> bytes:
        """
        Read a whole blob and verify it against its digest.

        Intended for manifests; use open_blob() for layers.

        Raises:
            ManifestReadError: if the blob is missing, unreadable or corrupt
        """
        try:
            data = self.blob_path(digest).read_bytes()
        except OSError as e:
            raise ManifestReadError(f"cannot read blob {digest}: {e}") from e

        actual = Digest.of(data, digest.algorithm)
        if actual != digest:
            raise ManifestReadError(f"blob {digest} is corrupt: content hashes to {actual}")
        return data

    def open_blob(self, digest: Digest):
        try:
            return open(self.blob_path(digest), "rb")
        except OSError as e:
            raise ManifestReadError(f"cannot open blob {digest}: {e}") from e

    def write_blob(self, data: bytes, algorithm: str = "sha256") -> Digest:
        """Store data as a blob and return its digest."""
        digest = Digest.of(data, algorithm)
        path = self.blob_path(digest)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic(path, data)
            logger.debug(f"Wrote blob {digest} ({len(data)} bytes)")
        return digest

    def write_blob_stream(self, digest: Digest, chunks) -> int:
        """
        Store a blob from an iterable of byte chunks.

        The content is hashed while it is written and only moved into place
        when it matches digest.

        Returns:
            Number of bytes written

        Raises:
            DigestMismatchError: if the content does not match digest
        """
        path = self.blob_path(digest)
        path.parent.mkdir(parents=True, exist_ok=True)
        h = hashlib.new(digest.algorithm)
        size = 0

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in chunks:
                    h.update(chunk)
                    f.write(chunk)
                    size += len(chunk)
            actual = Digest(f"{digest.algorithm}:{h.hexdigest()}")
            if actual != digest:
                raise DigestMismatchError(digest, actual)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            os.unlink(tmp_name)
            raise

        logger.debug(f"Wrote blob {digest} ({size} bytes)")
        return size

    # -------------------------------
    # Index
    # -------------------------------

    def read_index(self) -> bytes:
        index_file = self.root / INDEX_FILE
        try:
            return index_file.read_bytes()
        except OSError as e:
            raise ManifestReadError(f"cannot read {index_file}: {e}") from e

    def replace_descriptor(self, descriptor: Descriptor) -> None:
        """
        Add a top-level descriptor to index.json.

        Existing descriptors carrying the same reference-name annotation are
        removed first, so a name always resolves to the most recent entry.
        """
        index = IndexManifest.from_bytes(self.read_index())
        ref_name = descriptor.ref_name
        manifests = [
            d for d in index.manifests
            if ref_name is None or d.ref_name != ref_name
        ]
        replaced = len(index.manifests) - len(manifests)
        manifests.append(descriptor)

        updated = IndexManifest(
            manifests=manifests,
            schema_version=index.schema_version,
            media_type=index.media_type,
            annotations=index.annotations,
        )
        self._write_atomic(
            self.root / INDEX_FILE,
            json.dumps(updated.to_dict(), indent=2).encode("utf-8"),
        )
        logger.debug(
            f"Recorded {descriptor.digest} in {INDEX_FILE} (ref name {ref_name!r}, replaced {replaced})"
        )

    def _write_atomic(self, path: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            os.unlink(tmp_name)
            raise


class LayoutImage:
    """Image manifest stored in a layout."""

    def __init__(self, path: OciLayoutPath, descriptor: Descriptor):
        self._path = path
        self.descriptor = descriptor
        self.digest = descriptor.digest
        self.media_type = descriptor.media_type

    def __repr__(self):
        return f"LayoutImage({self.digest})"

    def raw_manifest(self) -> bytes:
        return self._path.read_blob(self.digest)

    def manifest(self) -> dict:
        try:
            data = json.loads(self.raw_manifest())
        except ValueError as e:
            raise ManifestReadError(f"manifest {self.digest} is not valid JSON: {e}") from e
        if not isinstance(data, dict) or "config" not in data:
            raise ManifestReadError(f"manifest {self.digest} has no config")
        return data

    def config(self) -> Descriptor:
        return Descriptor.from_dict(self.manifest()["config"])

    def layers(self) -> list[Descriptor]:
        return [Descriptor.from_dict(layer) for layer in self.manifest().get("layers") or []]

    def open_blob(self, digest: Digest):
        return self._path.open_blob(digest)


class LayoutImageIndex:
    """
    Index manifest stored in a layout.

    Without a descriptor this is the layout's top-level index.json; with one
    it is a (nested) image index blob.
    """

    def __init__(self, path: OciLayoutPath, descriptor: Descriptor | None = None):
        self._path = path
        self.descriptor = descriptor
        self.digest = descriptor.digest if descriptor else None
        self.media_type = descriptor.media_type if descriptor else OCI_INDEX

    def __repr__(self):
        return f"LayoutImageIndex({self.digest or self._path.root})"

    def raw_manifest(self) -> bytes:
        if self.descriptor is None:
            return self._path.read_index()
        return self._path.read_blob(self.digest)

    def index_manifest(self) -> IndexManifest:
        return IndexManifest.from_bytes(self.raw_manifest())

    def image(self, digest: Digest) -> LayoutImage:
        descriptor = self._find(digest)
        if descriptor.media_type not in IMAGE_MEDIA_TYPES:
            raise UnexpectedMediaTypeError(digest, descriptor.media_type, "an image manifest")
        return LayoutImage(self._path, descriptor)

    def image_index(self, digest: Digest) -> "LayoutImageIndex":
        descriptor = self._find(digest)
        if descriptor.media_type not in INDEX_MEDIA_TYPES:
            raise UnexpectedMediaTypeError(digest, descriptor.media_type, "an image index")
        return LayoutImageIndex(self._path, descriptor)

    def _find(self, digest: Digest) -> Descriptor:
        descriptor = self.index_manifest().find(digest)
        if descriptor is None:
            raise DescriptorNotFoundError(digest)
        return descriptor
