"""
Configuration module for the relocation service.

Loads all configuration from environment variables with sensible defaults.
"""

import os


class Config:
    """
    Relocation service configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 8080
            LAYOUT_DIR: Root directory of the OCI image layout. Default: ./layout
            REGISTRY_USERNAME: Registry username. Default: unset (anonymous)
            REGISTRY_PASSWORD: Registry password. Default: unset (anonymous)
            REGISTRY_INSECURE_HOSTS: Comma-separated hosts reached over plain http. Default: none
            REGISTRY_TIMEOUT: Registry request timeout in seconds. Default: 300
            MAX_IMAGE_NAME_LENGTH: Maximum image reference length. Default: 255
            MAX_TAG_LENGTH: Maximum tag length. Default: 128
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "8080"))

        # Layout
        self.LAYOUT_DIR = os.getenv("LAYOUT_DIR", "./layout")

        # Registry
        self.REGISTRY_USERNAME = os.getenv("REGISTRY_USERNAME") or None
        self.REGISTRY_PASSWORD = os.getenv("REGISTRY_PASSWORD") or None
        self.REGISTRY_INSECURE_HOSTS = [
            host.strip()
            for host in os.getenv("REGISTRY_INSECURE_HOSTS", "").split(",")
            if host.strip()
        ]
        self.REGISTRY_TIMEOUT = int(os.getenv("REGISTRY_TIMEOUT", "300"))  # seconds

        # Validation limits
        self.MAX_IMAGE_NAME_LENGTH = int(os.getenv("MAX_IMAGE_NAME_LENGTH", "255"))
        self.MAX_TAG_LENGTH = int(os.getenv("MAX_TAG_LENGTH", "128"))

    def __repr__(self):
        """String representation for logging (credentials omitted)."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"LAYOUT_DIR={self.LAYOUT_DIR}, "
            f"REGISTRY_USERNAME={self.REGISTRY_USERNAME}, "
            f"REGISTRY_INSECURE_HOSTS={self.REGISTRY_INSECURE_HOSTS})"
        )


# Global config instance
config = Config()
