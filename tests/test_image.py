"""Tests for the Name and Digest value types."""

import pytest

from relocation.errors import InvalidDigestError, InvalidReferenceError
from relocation.image import Digest, Name

SHA256 = "sha256:" + "deadbeef" * 8
SHA512 = "sha512:" + "ab" * 64


class TestName:
    @pytest.mark.parametrize(
        "reference,canonical",
        [
            ("testimage", "docker.io/library/testimage"),
            ("busybox:1.36", "docker.io/library/busybox:1.36"),
            ("team/app", "docker.io/team/app"),
            ("docker.io/busybox", "docker.io/library/busybox"),
            ("index.docker.io/library/busybox", "docker.io/library/busybox"),
            ("localhost/app", "localhost/app"),
            ("localhost:5000/team/app:v1", "localhost:5000/team/app:v1"),
            ("ghcr.io/org/sub/app", "ghcr.io/org/sub/app"),
            (f"ghcr.io/org/app:v1@{SHA256}", f"ghcr.io/org/app:v1@{SHA256}"),
            ("my-app_x.y__z", "docker.io/library/my-app_x.y__z"),
        ],
    )
    def test_normalization(self, reference, canonical):
        assert str(Name(reference)) == canonical

    def test_components(self):
        name = Name(f"localhost:5000/team/app:v1@{SHA256}")

        assert name.host == "localhost:5000"
        assert name.path == "team/app"
        assert name.tag == "v1"
        assert name.digest == Digest(SHA256)
        assert name.repository == "localhost:5000/team/app"

    def test_reference(self):
        assert Name("app:v2").reference == "v2"
        assert Name(f"app@{SHA256}").reference == SHA256
        assert Name("app").reference == "latest"

    @pytest.mark.parametrize(
        "reference",
        [":", "", "UPPER", "app:", "app@sha256:xyz", "a//b", "-app", "app:-tag", "ghcr.io/", "bad host.io/app", "busybox:tést"],
    )
    def test_invalid(self, reference):
        with pytest.raises(InvalidReferenceError) as exc_info:
            Name(reference)

        assert str(exc_info.value) == f'invalid image reference: "{reference}"'

    def test_invalid_is_value_error(self):
        with pytest.raises(ValueError):
            Name(":")

    def test_equality_uses_canonical_form(self):
        assert Name("testimage") == Name("docker.io/library/testimage")
        assert Name("testimage") != Name("testimage:latest")
        assert hash(Name("busybox")) == hash(Name("index.docker.io/library/busybox"))
        assert len({Name("busybox"), Name("docker.io/busybox")}) == 1

    def test_immutable(self):
        name = Name("busybox")

        with pytest.raises(AttributeError):
            name.tag = "v1"

    def test_tag_length_limit(self):
        Name("app:" + "t" * 128)

        with pytest.raises(InvalidReferenceError):
            Name("app:" + "t" * 129)


class TestDigest:
    def test_valid(self):
        digest = Digest(SHA256)

        assert str(digest) == SHA256
        assert digest.algorithm == "sha256"
        assert digest.hex == "deadbeef" * 8

    def test_sha512(self):
        assert Digest(SHA512).algorithm == "sha512"

    @pytest.mark.parametrize(
        "value",
        [
            "sha256:" + "DEADBEEF" * 8,
            "sha256:" + "0" * 63,
            "md5:" + "0" * 32,
            "0" * 64,
            "sha512:" + "0" * 64,
        ],
    )
    def test_invalid(self, value):
        with pytest.raises(InvalidDigestError):
            Digest(value)

    def test_non_string(self):
        with pytest.raises(InvalidDigestError):
            Digest(None)

    def test_equality(self):
        assert Digest(SHA256) == Digest(SHA256)
        assert Digest(SHA256) != Digest("sha256:" + "0" * 64)
        assert Digest(SHA256) != SHA256
        assert {Digest(SHA256): 1}[Digest(SHA256)] == 1

    def test_of(self):
        assert str(Digest.of(b"hello")) == "sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        assert Digest.of(b"hello", "sha512").algorithm == "sha512"

    def test_immutable(self):
        digest = Digest(SHA256)

        with pytest.raises(AttributeError):
            digest.hex = "00"
