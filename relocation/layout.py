"""
Layout component: name resolution and push dispatch over an OCI image layout.

Layout is a stateless facade over two injected collaborators: a LayoutPath
(the on-disk layout) and a RegistryClient (the remote side). Every call reads
the layout afresh.
"""

import dataclasses
import logging

from .errors import (
    InvalidLayoutEntryError,
    InvalidReferenceError,
    NotFoundError,
)
from .image import Digest, Name
from .manifest import REF_NAME_ANNOTATION
from .ports import LayoutPath, RegistryClient

logger = logging.getLogger(__name__)


class Layout:
    """
    Resolve names to digests in a layout and push layout entries to registries.

    Args:
        client: Registry client used to build pushable artifacts
        path: Layout path giving access to the layout's image index

    Example:
        >>> layout = Layout(RegistryClient.from_config(), OciLayoutPath("./layout"))
        >>> digest = layout.find(Name("busybox:1.36"))
        >>> layout.push(digest, Name("registry.example.com/mirror/busybox:1.36"))
    """

    def __init__(self, client: RegistryClient, path: LayoutPath):
        self._client = client
        self._path = path

    def __repr__(self):
        return f"Layout(path={self._path!r})"

    def find(self, name: Name) -> Digest:
        """
        Return the digest of the layout entry whose reference name is name.

        Reference-name annotations are parsed as image names and compared in
        canonical form, so an entry annotated "testimage" matches
        Name("docker.io/library/testimage"). The first matching entry wins.

        Raises:
            InvalidLayoutEntryError: if any annotation scanned is not a valid name
            NotFoundError: if no entry matches
            Errors from opening the layout or reading its index are propagated unchanged.
        """
        index = self._path.image_index()
        manifest = index.index_manifest()

        logger.debug(f"Searching {len(manifest.manifests)} layout entries for {name}")
        for descriptor in manifest.manifests:
            ref_name = descriptor.annotations.get(REF_NAME_ANNOTATION)
            if ref_name is None:
                continue
            try:
                entry_name = Name(ref_name)
            except InvalidReferenceError as e:
                logger.error(f"Layout entry {descriptor.digest} has invalid name {ref_name!r}")
                raise InvalidLayoutEntryError(ref_name) from e

            if entry_name == name:
                logger.info(f"Found {name} in layout: {descriptor.digest}")
                return descriptor.digest

        raise NotFoundError(f"image {name} not found in layout")

    def push(self, digest: Digest, target: Name) -> None:
        """
        Push the layout entry identified by digest to target.

        The digest is resolved as an image manifest first and, failing that,
        as an image index. When neither resolves, the index lookup error is
        raised, chained from the image lookup error. Any exception from a
        lookup counts as "not found".

        Raises:
            Exception: the index lookup error when neither lookup succeeds
            WriteError: if the registry client fails to write
            Errors from opening the layout or reading its index are propagated unchanged.
        """
        index = self._path.image_index()
        manifest = index.index_manifest()
        logger.debug(f"Resolving {digest} among {len(manifest.manifests)} layout entries")

        try:
            image = index.image(digest)
        except Exception as e:
            logger.debug(f"{digest} is not an image manifest: {e}")
            image_error = e
        else:
            self._write(self._client.new_image_from_manifest(image), digest, target)
            return

        try:
            child = index.image_index(digest)
        except Exception as e:
            logger.warning(f"{digest} is neither an image manifest nor an image index")
            raise e from image_error

        self._write(self._client.new_image_from_index(child), digest, target)

    def add(self, name: Name) -> Digest:
        """
        Pull the image or image index name refers to into the layout.

        The new top-level entry is annotated with the canonical form of name,
        replacing any existing entry with the same reference name, so that
        find(name) returns the pulled digest. Requires a WritableLayoutPath.

        Raises:
            ReadError: if the registry read fails
        """
        remote = self._client.read(name)
        descriptor = remote.save(self._path)

        annotations = {**descriptor.annotations, REF_NAME_ANNOTATION: str(name)}
        descriptor = dataclasses.replace(descriptor, annotations=annotations)
        self._path.replace_descriptor(descriptor)

        logger.info(f"Added {name} to layout: {descriptor.digest}")
        return descriptor.digest

    def _write(self, artifact, digest: Digest, target: Name) -> None:
        written, size = artifact.write(target)
        logger.info(f"Pushed {digest} to {target} ({written}, {size} bytes)")
