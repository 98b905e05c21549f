"""
Error types for the relocation service.

Every failure raised by this package derives from RelocationError so callers
(and the HTTP layer) can handle them in one place.
"""


class RelocationError(Exception):
    """Base class for all relocation errors."""


class InvalidReferenceError(RelocationError, ValueError):
    """An image reference string is not a well-formed image name."""

    def __init__(self, reference: str, reason: str = ""):
        self.reference = reference
        self.reason = reason
        super().__init__(f'invalid image reference: "{reference}"')


class InvalidDigestError(RelocationError, ValueError):
    """A digest string is not of the form <algorithm>:<hex>."""

    def __init__(self, digest: str, reason: str = ""):
        self.digest = digest
        self.reason = reason
        super().__init__(f'invalid digest: "{digest}"')


class LayoutAccessError(RelocationError):
    """The layout root cannot be opened or is not an OCI image layout."""


class ManifestReadError(RelocationError):
    """The layout opened but a manifest in it is unreadable or corrupt."""


class InvalidLayoutEntryError(RelocationError):
    """A descriptor in the layout carries a malformed reference-name annotation."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f'invalid image reference: "{reference}"')


class NotFoundError(RelocationError):
    """A name or digest has no matching entry."""


class DescriptorNotFoundError(NotFoundError):
    """No descriptor with the given digest exists in an image index."""

    def __init__(self, digest):
        self.digest = digest
        super().__init__(f"could not find descriptor in index: {digest}")


class UnexpectedMediaTypeError(RelocationError):
    """A descriptor was found but refers to the wrong kind of artifact."""

    def __init__(self, digest, media_type: str, expected: str):
        self.digest = digest
        self.media_type = media_type
        super().__init__(
            f"descriptor {digest} has media type {media_type!r}, expected {expected}"
        )


class RegistryError(RelocationError):
    """A remote registry request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class WriteError(RegistryError):
    """Writing an artifact to a remote registry failed."""


class ReadError(RegistryError):
    """Reading an artifact from a remote registry failed."""


class DigestMismatchError(RelocationError):
    """Content did not hash to the digest it was addressed by."""

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"digest mismatch: expected {expected}, got {actual}")
