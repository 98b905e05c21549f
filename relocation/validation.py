"""
Input validation module for the relocation service.

Provides validation functions for image references, tags, digests, and parsing.
"""

import hashlib
import logging
import re

from .config import config
from .errors import InvalidDigestError, InvalidReferenceError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "docker.io"
LEGACY_DEFAULT_REGISTRY = "index.docker.io"
OFFICIAL_NAMESPACE = "library"

DIGEST_HEX_LENGTHS = {
    "sha256": 64,
    "sha512": 128,
}

HOST_RE = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)*"
    r"(?::[0-9]+)?$"
)
PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|[-]*)[a-z0-9]+)*$")
TAG_RE = re.compile(r"^\w[\w.-]*$", re.ASCII)


def compute_sha256(data: bytes) -> str:
    """
    Compute SHA256 digest in OCI/Docker format.

    Args:
        data: Bytes to hash

    Returns:
        String in format "sha256:<64 hex chars>"

    Example:
        >>> compute_sha256(b"hello")
        'sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    h = hashlib.sha256()
    h.update(data)
    return "sha256:" + h.hexdigest()


def validate_digest(digest: str) -> None:
    """
    Validate an OCI content digest.

    Args:
        digest: Digest string to validate

    Raises:
        InvalidDigestError: if the algorithm is unknown or the hex part is malformed

    Format:
        sha256:<64 lowercase hex characters> or sha512:<128 lowercase hex characters>
    """
    algorithm, sep, hex_part = digest.partition(":")
    if not sep or algorithm not in DIGEST_HEX_LENGTHS:
        logger.warning(f"Invalid digest algorithm: {digest}")
        raise InvalidDigestError(digest, "unsupported algorithm")

    expected = DIGEST_HEX_LENGTHS[algorithm]
    if not re.match(rf"^[a-f0-9]{{{expected}}}$", hex_part):
        logger.warning(f"Invalid digest format: {digest}")
        raise InvalidDigestError(digest, f"must be {algorithm}:<{expected} hex characters>")

    logger.debug(f"Digest validated: {digest}")


def validate_tag(tag: str) -> None:
    """
    Validate container image tag.

    Args:
        tag: Tag name to validate

    Raises:
        ValueError: if the tag is empty, too long, or contains invalid characters

    Validation Rules:
        - Must be 1-{MAX_TAG_LENGTH} characters (configurable)
        - ASCII letters, digits, underscores, dots (.) and hyphens (-); may not start with a dot or hyphen
    """
    if not tag or len(tag) > config.MAX_TAG_LENGTH:
        raise ValueError(f"tag must be 1-{config.MAX_TAG_LENGTH} characters")

    if not TAG_RE.match(tag):
        raise ValueError("tag may contain only ASCII letters, digits, underscores, dots and hyphens")


def validate_image_name(name: str) -> None:
    """
    Validate the repository part of an image reference (host and path).

    Args:
        name: Repository name, e.g. "docker.io/library/busybox"

    Raises:
        ValueError: if the name is too long or a component is malformed

    Validation Rules:
        - Must be 1-{MAX_IMAGE_NAME_LENGTH} characters (configurable)
        - Host: DNS labels separated by dots, optional :port
        - Path components: lowercase alphanumerics separated by ".", "_", "__" or dashes
    """
    if not name or len(name) > config.MAX_IMAGE_NAME_LENGTH:
        raise ValueError(f"name must be 1-{config.MAX_IMAGE_NAME_LENGTH} characters")

    host, _, path = name.partition("/")
    if not HOST_RE.match(host):
        raise ValueError(f"invalid registry host {host!r}")

    for component in path.split("/"):
        if not PATH_COMPONENT_RE.match(component):
            raise ValueError(f"invalid path component {component!r}")


def _looks_like_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def parse_image_name(reference: str) -> dict:
    """
    Parse and normalize an image reference into its components.

    Accepts references of the form [host[:port]/]path[:tag][@digest]. A missing
    host defaults to docker.io, and single-component docker.io paths are placed
    in the "library" namespace.

    Args:
        reference: Image reference, e.g. "busybox:1.36" or "ghcr.io/org/app@sha256:..."

    Returns:
        Dictionary with structure:
        {"host": str, "path": str, "tag": str | None, "digest": str | None}

    Raises:
        InvalidReferenceError: if the reference is malformed

    Examples:
        >>> parse_image_name("testimage")
        {'host': 'docker.io', 'path': 'library/testimage', 'tag': None, 'digest': None}

        >>> parse_image_name("localhost:5000/team/app:v1")
        {'host': 'localhost:5000', 'path': 'team/app', 'tag': 'v1', 'digest': None}
    """
    remainder, at, digest = reference.partition("@")
    if at:
        try:
            validate_digest(digest)
        except InvalidDigestError as e:
            raise InvalidReferenceError(reference, str(e)) from e
    else:
        digest = None

    tag = None
    last_slash = remainder.rfind("/")
    colon = remainder.rfind(":")
    if colon > last_slash:
        remainder, tag = remainder[:colon], remainder[colon + 1:]

    components = remainder.split("/")
    if len(components) > 1 and _looks_like_host(components[0]):
        host = components[0]
        path = "/".join(components[1:])
    else:
        host = DEFAULT_REGISTRY
        path = remainder

    if host == LEGACY_DEFAULT_REGISTRY:
        host = DEFAULT_REGISTRY
    if host == DEFAULT_REGISTRY and path and "/" not in path:
        path = f"{OFFICIAL_NAMESPACE}/{path}"

    try:
        validate_image_name(f"{host}/{path}")
        if tag is not None:
            validate_tag(tag)
    except ValueError as e:
        logger.warning(f"Invalid image reference {reference!r}: {e}")
        raise InvalidReferenceError(reference, str(e)) from e

    return {"host": host, "path": path, "tag": tag, "digest": digest}
