"""
Registry client for the relocation service.

Talks to remote registries using the OCI Distribution API v2 over requests.
Provides the pushable artifacts used by Layout.push (image manifests and
image indexes read from a layout) and the remote artifacts used by
Layout.add (manifests and indexes pulled from a registry).
"""

import base64
import json
import logging
import re
from urllib.parse import urljoin

import requests

from .config import config
from .errors import ReadError, RegistryError, WriteError
from .image import Digest, Name
from .manifest import (
    DOCKER_MANIFEST,
    DOCKER_MANIFEST_LIST,
    IMAGE_MEDIA_TYPES,
    OCI_INDEX,
    OCI_MANIFEST,
    Descriptor,
    IndexManifest,
    is_distributable,
    is_index,
)

logger = logging.getLogger(__name__)

DOCKER_HUB_HOST = "docker.io"
DOCKER_HUB_API_HOST = "registry-1.docker.io"

MANIFEST_ACCEPT = ", ".join([OCI_MANIFEST, OCI_INDEX, DOCKER_MANIFEST, DOCKER_MANIFEST_LIST])

CHUNK_SIZE = 1024 * 1024

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')


def parse_challenge(header: str) -> tuple[str, dict]:
    """
    Parse a WWW-Authenticate header.

    Example:
        >>> parse_challenge('Bearer realm="https://auth.example.com/token",service="registry"')
        ('bearer', {'realm': 'https://auth.example.com/token', 'service': 'registry'})
    """
    scheme, _, params = header.strip().partition(" ")
    return scheme.lower(), dict(_CHALLENGE_PARAM_RE.findall(params))


class Repository:
    """
    One repository on one registry, with its own authorization state.

    Errors are raised as error_class (WriteError when pushing, ReadError when
    pulling) so callers can tell which direction failed.
    """

    def __init__(self, client: "RegistryClient", name: Name, actions: str, error_class=RegistryError):
        self._client = client
        self.name = name
        self._actions = actions
        self._error = error_class
        self._authorization = None

        host = DOCKER_HUB_API_HOST if name.host == DOCKER_HUB_HOST else name.host
        scheme = "http" if name.host in client.insecure_hosts else "https"
        self.base_url = f"{scheme}://{host}/v2/{name.path}/"

    def __repr__(self):
        return f"Repository({self.name.repository!r})"

    # -------------------------------
    # Transport
    # -------------------------------

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        for attempt in range(2):
            if self._authorization:
                headers["Authorization"] = self._authorization
            body = kwargs.get("data")
            if attempt and hasattr(body, "seek"):
                body.seek(0)
            try:
                response = self._client.session.request(
                    method, url, headers=headers, timeout=self._client.timeout, **kwargs
                )
            except requests.RequestException as e:
                logger.error(f"{method} {url} failed: {e}")
                raise self._error(f"{method} {url} failed: {e}") from e

            if response.status_code != 401 or attempt:
                return response
            self._authenticate(response)

    def _authenticate(self, response: requests.Response) -> None:
        scheme, params = parse_challenge(response.headers.get("WWW-Authenticate", ""))
        credentials = self._client.credentials

        if scheme == "basic":
            if not credentials:
                raise self._error(f"{self.name.host} requires credentials", 401)
            token = base64.b64encode(":".join(credentials).encode("utf-8")).decode("ascii")
            self._authorization = f"Basic {token}"
            return

        if scheme != "bearer" or "realm" not in params:
            raise self._error(f"unsupported authentication challenge from {self.name.host}", 401)

        query = {"scope": params.get("scope") or f"repository:{self.name.path}:{self._actions}"}
        if "service" in params:
            query["service"] = params["service"]

        logger.debug(f"Requesting token from {params['realm']} for {query['scope']}")
        try:
            token_response = self._client.session.get(
                params["realm"],
                params=query,
                auth=credentials,
                timeout=self._client.timeout,
            )
        except requests.RequestException as e:
            raise self._error(f"token request to {params['realm']} failed: {e}") from e

        if token_response.status_code != 200:
            raise self._error(
                f"token request to {params['realm']} failed: {token_response.status_code}",
                token_response.status_code,
            )
        try:
            body = token_response.json()
        except ValueError as e:
            raise self._error(f"token response from {params['realm']} is not JSON") from e

        token = body.get("token") or body.get("access_token")
        if not token:
            raise self._error(f"token response from {params['realm']} has no token")
        self._authorization = f"Bearer {token}"

    def _check(self, response: requests.Response, expected: tuple, what: str) -> None:
        if response.status_code not in expected:
            logger.error(f"{what} failed: {response.status_code} {response.text[:200]}")
            raise self._error(
                f"{what} failed: {response.status_code} {response.reason}",
                response.status_code,
            )

    # -------------------------------
    # Blobs
    # -------------------------------

    def blob_exists(self, digest: Digest) -> bool:
        response = self._request("HEAD", urljoin(self.base_url, f"blobs/{digest}"))
        if response.status_code == 404:
            return False
        self._check(response, (200,), f"checking blob {digest} in {self.name.repository}")
        return True

    def upload_blob(self, digest: Digest, size: int, fileobj) -> None:
        """Monolithic upload: POST to open a session, then PUT the content."""
        response = self._request("POST", urljoin(self.base_url, "blobs/uploads/"))
        self._check(response, (202,), f"starting upload of {digest} to {self.name.repository}")

        location = response.headers.get("Location")
        if not location:
            raise self._error(f"registry did not return an upload location for {digest}")
        upload_url = urljoin(self.base_url, location)
        separator = "&" if "?" in upload_url else "?"

        response = self._request(
            "PUT",
            f"{upload_url}{separator}digest={digest}",
            data=fileobj,
            headers={
                "Content-Type": "application/octet-stream",
                "Content-Length": str(size),
            },
        )
        self._check(response, (201,), f"uploading blob {digest} to {self.name.repository}")
        logger.debug(f"Uploaded blob {digest} ({size} bytes) to {self.name.repository}")

    def blob_chunks(self, digest: Digest):
        response = self._request("GET", urljoin(self.base_url, f"blobs/{digest}"), stream=True)
        with response:
            self._check(response, (200,), f"fetching blob {digest} from {self.name.repository}")
            yield from response.iter_content(chunk_size=CHUNK_SIZE)

    # -------------------------------
    # Manifests
    # -------------------------------

    def put_manifest(self, reference: str, raw: bytes, media_type: str) -> None:
        response = self._request(
            "PUT",
            urljoin(self.base_url, f"manifests/{reference}"),
            data=raw,
            headers={"Content-Type": media_type},
        )
        self._check(response, (200, 201), f"writing manifest {self.name.repository}:{reference}")
        logger.debug(f"Wrote manifest {self.name.repository}:{reference} ({len(raw)} bytes)")

    def get_manifest(self, reference: str) -> tuple[bytes, str]:
        response = self._request(
            "GET",
            urljoin(self.base_url, f"manifests/{reference}"),
            headers={"Accept": MANIFEST_ACCEPT},
        )
        if response.status_code == 404:
            raise self._error(f"manifest {self.name.repository}:{reference} not found", 404)
        self._check(response, (200,), f"reading manifest {self.name.repository}:{reference}")

        raw = response.content
        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        if media_type not in IMAGE_MEDIA_TYPES and not is_index(media_type):
            try:
                media_type = json.loads(raw).get("mediaType") or OCI_MANIFEST
            except (ValueError, AttributeError) as e:
                raise self._error(f"manifest {self.name.repository}:{reference} is not JSON") from e
        return raw, media_type


# -------------------------------
# Writing layout content to a registry
# -------------------------------


def _write_image(repo: Repository, image, reference: str) -> bytes:
    raw = image.raw_manifest()
    for descriptor in [image.config(), *image.layers()]:
        if not is_distributable(descriptor.media_type):
            logger.debug(f"Skipping non-distributable layer {descriptor.digest}")
            continue
        if repo.blob_exists(descriptor.digest):
            logger.debug(f"Blob {descriptor.digest} already present in {repo.name.repository}")
            continue
        with image.open_blob(descriptor.digest) as f:
            repo.upload_blob(descriptor.digest, descriptor.size, f)

    repo.put_manifest(reference, raw, image.media_type)
    return raw


def _write_index(repo: Repository, index, reference: str) -> bytes:
    raw = index.raw_manifest()
    for child in IndexManifest.from_bytes(raw).manifests:
        if is_index(child.media_type):
            _write_index(repo, index.image_index(child.digest), str(child.digest))
        elif child.media_type in IMAGE_MEDIA_TYPES:
            _write_image(repo, index.image(child.digest), str(child.digest))
        else:
            raise WriteError(f"cannot push {child.digest}: unsupported media type {child.media_type!r}")

    repo.put_manifest(reference, raw, index.media_type)
    return raw


class ManifestArtifact:
    """An image manifest from a layout, ready to be pushed."""

    def __init__(self, client: "RegistryClient", image):
        self._client = client
        self.image = image

    def write(self, target: Name) -> tuple[Digest, int]:
        repo = self._client.repository(target, "pull,push", WriteError)
        raw = _write_image(repo, self.image, target.reference)
        logger.info(f"Pushed image {self.image.digest} to {target}")
        return self.image.digest, len(raw)


class IndexArtifact:
    """An image index from a layout, ready to be pushed with all its children."""

    def __init__(self, client: "RegistryClient", index):
        self._client = client
        self.index = index

    def write(self, target: Name) -> tuple[Digest, int]:
        repo = self._client.repository(target, "pull,push", WriteError)
        raw = _write_index(repo, self.index, target.reference)
        digest = Digest.of(raw)
        logger.info(f"Pushed image index {digest} to {target}")
        return digest, len(raw)


# -------------------------------
# Reading from a registry into a layout
# -------------------------------


class RemoteManifest:
    """A manifest or index fetched from a registry."""

    def __init__(self, repo: Repository, descriptor: Descriptor, raw: bytes):
        self._repo = repo
        self.descriptor = descriptor
        self.raw = raw

    def __repr__(self):
        return f"RemoteManifest({self._repo.name.repository}@{self.descriptor.digest})"

    def save(self, path) -> Descriptor:
        """
        Copy this manifest, its children and its blobs into a layout.

        Blobs already present in the layout are not fetched again.
        """
        if is_index(self.descriptor.media_type):
            for child in IndexManifest.from_bytes(self.raw).manifests:
                self._fetch_child(child.digest).save(path)
        else:
            try:
                manifest = json.loads(self.raw)
            except ValueError as e:
                raise ReadError(f"manifest {self.descriptor.digest} is not valid JSON") from e
            blobs = [manifest["config"], *(manifest.get("layers") or [])]
            for blob in map(Descriptor.from_dict, blobs):
                if not is_distributable(blob.media_type):
                    logger.debug(f"Skipping non-distributable layer {blob.digest}")
                    continue
                if path.has_blob(blob.digest):
                    continue
                path.write_blob_stream(blob.digest, self._repo.blob_chunks(blob.digest))

        path.write_blob(self.raw, self.descriptor.digest.algorithm)
        logger.debug(f"Saved {self.descriptor.media_type} {self.descriptor.digest}")
        return self.descriptor

    def _fetch_child(self, digest: Digest) -> "RemoteManifest":
        raw, media_type = self._repo.get_manifest(str(digest))
        actual = Digest.of(raw, digest.algorithm)
        if actual != digest:
            raise ReadError(f"manifest {digest} from {self._repo.name.repository} hashes to {actual}")
        return RemoteManifest(self._repo, Descriptor(media_type, digest, len(raw)), raw)


class RegistryClient:
    """
    Builds pushable artifacts and reads artifacts from remote registries.

    Args:
        username: Optional registry username (anonymous when unset)
        password: Optional registry password
        insecure_hosts: Registry hosts to reach over plain http
        timeout: Request timeout in seconds
        session: requests.Session to use (a new one by default)
    """

    def __init__(self, username=None, password=None, insecure_hosts=(), timeout=300, session=None):
        self.session = session or requests.Session()
        self.credentials = (username, password) if username and password else None
        self.insecure_hosts = set(insecure_hosts)
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg=config) -> "RegistryClient":
        return cls(
            username=cfg.REGISTRY_USERNAME,
            password=cfg.REGISTRY_PASSWORD,
            insecure_hosts=cfg.REGISTRY_INSECURE_HOSTS,
            timeout=cfg.REGISTRY_TIMEOUT,
        )

    def repository(self, name: Name, actions: str = "pull", error_class=RegistryError) -> Repository:
        return Repository(self, name, actions, error_class)

    def new_image_from_manifest(self, image) -> ManifestArtifact:
        return ManifestArtifact(self, image)

    def new_image_from_index(self, index) -> IndexArtifact:
        return IndexArtifact(self, index)

    def read(self, name: Name) -> RemoteManifest:
        """
        Fetch the manifest or index that name refers to.

        Raises:
            ReadError: if the registry cannot be reached or the manifest is missing
        """
        repo = self.repository(name, "pull", ReadError)
        raw, media_type = repo.get_manifest(name.reference)

        digest = Digest.of(raw, name.digest.algorithm if name.digest else "sha256")
        if name.digest and name.digest != digest:
            raise ReadError(f"manifest for {name} hashes to {digest}")

        logger.info(f"Read {media_type} {digest} from {name}")
        return RemoteManifest(repo, Descriptor(media_type, digest, len(raw)), raw)
