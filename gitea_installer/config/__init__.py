"""Centralized configuration defaults for the Gitea installer."""

from .defaults import (
    ACME_WEBROOT,
    CERT_VALIDITY_DAYS,
    COMPOSE_FILENAME,
    CONTAINER_SSH_PORT,
    DEFAULT_INSTALL_DIR,
    DEFAULT_SSH_PORT,
    HOSTS_FILE,
    NAMED_VOLUMES,
    PASSWORD_LENGTH,
)
from .env_profiles import DEFAULT_PROFILE, ImageProfile, resolve_profile

__all__ = [
    "ACME_WEBROOT",
    "CERT_VALIDITY_DAYS",
    "COMPOSE_FILENAME",
    "CONTAINER_SSH_PORT",
    "DEFAULT_INSTALL_DIR",
    "DEFAULT_PROFILE",
    "DEFAULT_SSH_PORT",
    "HOSTS_FILE",
    "NAMED_VOLUMES",
    "PASSWORD_LENGTH",
    "ImageProfile",
    "resolve_profile",
]
