"""
Flask application and relocation endpoints.

Exposes the Layout operations (find, add, push) over HTTP.
"""

import logging

from flask import Flask, abort, jsonify, request

from .client import RegistryClient
from .config import config
from .errors import (
    InvalidDigestError,
    InvalidReferenceError,
    NotFoundError,
    RegistryError,
    RelocationError,
    UnexpectedMediaTypeError,
)
from .image import Digest, Name
from .layout import Layout
from .layoutpath import OciLayoutPath

logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)


def get_layout() -> Layout:
    """Build the Layout for the configured layout directory and registry settings."""
    return Layout(RegistryClient.from_config(config), OciLayoutPath(config.LAYOUT_DIR))


def _status_for(error: RelocationError) -> int:
    if isinstance(error, (InvalidReferenceError, InvalidDigestError)):
        return 400
    if isinstance(error, (NotFoundError, UnexpectedMediaTypeError)):
        return 404
    if isinstance(error, RegistryError):
        return 502
    return 500


def _fail(error: RelocationError, what: str):
    status = _status_for(error)
    if status >= 500:
        logger.error(f"{what} failed: {error}")
    else:
        logger.warning(f"{what} failed: {error}")
    abort(status, str(error))


def _json_field(body: dict, field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value:
        logger.warning(f"Request missing field '{field}'")
        abort(400, f"Missing or invalid field: {field}")
    return value


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        logger.warning("Request body is not a JSON object")
        abort(400, "Request body must be a JSON object")
    return body


@app.errorhandler(400)
@app.errorhandler(404)
@app.errorhandler(500)
@app.errorhandler(502)
def error_response(error):
    """Render HTTP errors as JSON: {"error": <description>}."""
    return jsonify(error=error.description), error.code


# -------------------------------
# Layout Endpoints
# -------------------------------


@app.route("/v1/layout/images/<path:image_name>", methods=["GET"])
def find_image(image_name):
    """
    Resolve an image name to the digest recorded for it in the layout.

    Args:
        image_name: Image reference, e.g. "busybox" or "ghcr.io/org/app:v1"

    Returns:
        JSON {"name": <canonical name>, "digest": <digest>}

    Raises:
        400: Invalid image name
        404: Name not present in the layout
        500: Layout unreadable or containing an invalid entry
    """
    logger.info(f"Find requested: image='{image_name}'")
    try:
        name = Name(image_name)
        digest = get_layout().find(name)
    except RelocationError as e:
        _fail(e, f"Find of '{image_name}'")

    return jsonify(name=str(name), digest=str(digest))


@app.route("/v1/layout/images", methods=["POST"])
def add_image():
    """
    Pull an image (or image index) from its registry into the layout.

    Request Body:
        {"name": "<image reference>"}

    Returns:
        201 with JSON {"name": <canonical name>, "digest": <digest>}

    Raises:
        400: Missing or invalid name
        502: Registry read failed
    """
    image_name = _json_field(_json_body(), "name")
    logger.info(f"Add requested: image='{image_name}'")
    try:
        name = Name(image_name)
        digest = get_layout().add(name)
    except RelocationError as e:
        _fail(e, f"Add of '{image_name}'")

    return jsonify(name=str(name), digest=str(digest)), 201


@app.route("/v1/layout/push", methods=["POST"])
def push_image():
    """
    Push a layout entry, identified by digest, to a target reference.

    Request Body:
        {"digest": "sha256:...", "target": "<image reference>"}

    Returns:
        JSON {"digest": <digest>, "target": <canonical target>}

    Raises:
        400: Missing or invalid digest or target
        404: Digest matches neither an image manifest nor an image index
        502: Registry write failed
    """
    body = _json_body()
    digest_value = _json_field(body, "digest")
    target_value = _json_field(body, "target")
    logger.info(f"Push requested: digest='{digest_value}', target='{target_value}'")
    try:
        digest = Digest(digest_value)
        target = Name(target_value)
        get_layout().push(digest, target)
    except RelocationError as e:
        _fail(e, f"Push of '{digest_value}'")

    return jsonify(digest=str(digest), target=str(target))
