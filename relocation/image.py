"""
Image name and digest value types.

Both types validate at construction and are immutable afterwards. Equality
and hashing use the canonical string form.
"""

import hashlib

from .errors import InvalidDigestError, InvalidReferenceError
from .validation import compute_sha256, parse_image_name, validate_digest


class Digest:
    """
    Content-addressable identifier of the form <algorithm>:<hex>.

    Example:
        >>> d = Digest("sha256:" + "0" * 64)
        >>> d.algorithm
        'sha256'
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        if not isinstance(value, str):
            raise InvalidDigestError(str(value), "digest must be a string")
        validate_digest(value)
        object.__setattr__(self, "_value", value)

    @classmethod
    def of(cls, data: bytes, algorithm: str = "sha256") -> "Digest":
        """Compute the digest of data (sha256 unless another algorithm is given)."""
        if algorithm == "sha256":
            return cls(compute_sha256(data))
        return cls(f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}")

    @property
    def algorithm(self) -> str:
        return self._value.partition(":")[0]

    @property
    def hex(self) -> str:
        return self._value.partition(":")[2]

    def __setattr__(self, name, value):
        raise AttributeError("Digest is immutable")

    def __str__(self):
        return self._value

    def __repr__(self):
        return f"Digest({self._value!r})"

    def __eq__(self, other):
        if isinstance(other, Digest):
            return self._value == other._value
        return NotImplemented

    def __hash__(self):
        return hash(self._value)


class Name:
    """
    Validated, normalized image reference.

    The canonical form is host/path[:tag][@digest] with the default registry
    (docker.io) and namespace (library) applied. No implicit tag is added.

    Example:
        >>> str(Name("testimage"))
        'docker.io/library/testimage'
    """

    __slots__ = ("_host", "_path", "_tag", "_digest")

    def __init__(self, reference: str):
        if not isinstance(reference, str):
            raise InvalidReferenceError(str(reference), "reference must be a string")
        parts = parse_image_name(reference)
        object.__setattr__(self, "_host", parts["host"])
        object.__setattr__(self, "_path", parts["path"])
        object.__setattr__(self, "_tag", parts["tag"])
        object.__setattr__(
            self, "_digest", Digest(parts["digest"]) if parts["digest"] else None
        )

    @property
    def host(self) -> str:
        return self._host

    @property
    def path(self) -> str:
        return self._path

    @property
    def tag(self) -> str | None:
        return self._tag

    @property
    def digest(self) -> Digest | None:
        return self._digest

    @property
    def repository(self) -> str:
        """Registry-qualified repository, without tag or digest."""
        return f"{self._host}/{self._path}"

    @property
    def reference(self) -> str:
        """Tag or digest used when addressing the manifest in a registry."""
        if self._tag:
            return self._tag
        if self._digest:
            return str(self._digest)
        return "latest"

    def __setattr__(self, name, value):
        raise AttributeError("Name is immutable")

    def __str__(self):
        s = self.repository
        if self._tag:
            s += f":{self._tag}"
        if self._digest:
            s += f"@{self._digest}"
        return s

    def __repr__(self):
        return f"Name({str(self)!r})"

    def __eq__(self, other):
        if isinstance(other, Name):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self):
        return hash(str(self))
