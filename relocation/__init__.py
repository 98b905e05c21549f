"""
Image relocation between OCI image layouts and container registries.

Resolves human-readable image names to the content digests recorded for
them in an on-disk OCI image layout, and pushes layout entries (single
platform image manifests or multi-platform image indexes) to remote
registries.

Features:
    - Name and digest value types with docker-style normalization
    - Name lookup through org.opencontainers.image.ref.name annotations
    - Manifest-first push dispatch with image index fallback
    - Pulling images and indexes from registries into a layout
    - OCI Distribution API client with bearer and basic authentication
    - HTTP interface (Flask) over the layout operations
    - Configurable via environment variables

Layout Format:
    <layout>/oci-layout        layout version marker
    <layout>/index.json        top-level index manifest
    <layout>/blobs/sha256/...  manifests, configs and layers

Example:
    >>> from relocation import Layout, Name, OciLayoutPath, RegistryClient
    >>> layout = Layout(RegistryClient(), OciLayoutPath("./layout"))
    >>> digest = layout.find(Name("testimage"))
    >>> layout.push(digest, Name("registry.example.com/mirror/testimage:v1"))
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .errors import (
    InvalidLayoutEntryError,
    LayoutAccessError,
    ManifestReadError,
    NotFoundError,
    RelocationError,
    WriteError,
)
from .image import Digest, Name
from .layout import Layout
from .layoutpath import OciLayoutPath
from .client import RegistryClient

__all__ = [
    "Config",
    "Digest",
    "Name",
    "Layout",
    "OciLayoutPath",
    "RegistryClient",
    "RelocationError",
    "LayoutAccessError",
    "ManifestReadError",
    "InvalidLayoutEntryError",
    "NotFoundError",
    "WriteError",
]
