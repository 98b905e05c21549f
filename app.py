"""
Image relocation service.

Serves the layout operations over HTTP: resolving image names to digests
recorded in an on-disk OCI image layout, pulling images from registries into
the layout, and pushing layout entries to registries.

Endpoints:
    - GET  /v1/layout/images/<name> - Resolve a name to its digest
    - POST /v1/layout/images        - Pull {"name"} into the layout
    - POST /v1/layout/push          - Push {"digest"} to {"target"}

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, LAYOUT_DIR, REGISTRY_USERNAME,
    REGISTRY_PASSWORD, REGISTRY_INSECURE_HOSTS, REGISTRY_TIMEOUT,
    MAX_IMAGE_NAME_LENGTH, MAX_TAG_LENGTH

Example:
    $ LAYOUT_DIR=/srv/layout LOG_LEVEL=DEBUG python app.py
    $ curl localhost:8080/v1/layout/images/busybox:1.36
    $ curl -X POST localhost:8080/v1/layout/push \\
        -H 'Content-Type: application/json' \\
        -d '{"digest": "sha256:...", "target": "localhost:5000/busybox:1.36"}'
"""

import logging

from relocation.config import config
from relocation.layoutpath import OciLayoutPath
from relocation.routes import app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the relocation service."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    logger.info(f"Starting image relocation service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    OciLayoutPath.create(config.LAYOUT_DIR)
    if debug_mode:
        logger.info("Flask debug mode enabled")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode)


if __name__ == "__main__":
    main()
