"""Container image profiles.

A profile pins the three images of the service topology. Operators can
override any of them through environment variables without editing the
templates.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

ENV_OVERRIDES = {
    "gitea_image": "GITEA_INSTALLER_GITEA_IMAGE",
    "postgres_image": "GITEA_INSTALLER_POSTGRES_IMAGE",
    "nginx_image": "GITEA_INSTALLER_NGINX_IMAGE",
}


@dataclass(frozen=True)
class ImageProfile:
    """Images used for the application server, database and reverse proxy."""

    name: str
    gitea_image: str
    postgres_image: str
    nginx_image: str


DEFAULT_PROFILE = ImageProfile(
    name="default",
    gitea_image="docker.gitea.com/gitea:1.23.7",
    postgres_image="docker.io/library/postgres:14-alpine",
    nginx_image="nginx:alpine",
)


def resolve_profile(base: ImageProfile = DEFAULT_PROFILE) -> ImageProfile:
    """Return ``base`` with any non-blank environment overrides applied."""

    changes: dict[str, str] = {}
    for field_name, env_key in ENV_OVERRIDES.items():
        value = os.environ.get(env_key, "").strip()
        if value:
            LOGGER.info("Using %s from %s: %s", field_name, env_key, value)
            changes[field_name] = value
    if not changes:
        return base
    return replace(base, name="env", **changes)
