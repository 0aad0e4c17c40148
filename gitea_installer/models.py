"""安装与卸载请求。Validated requests for both workflows."""

from __future__ import annotations

import posixpath
import re
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from gitea_installer.config.defaults import (
    DEFAULT_INSTALL_DIR,
    DEFAULT_SSH_PORT,
    NAMED_VOLUMES,
    PASSWORD_LENGTH,
)
from gitea_installer.errors import UsageError

PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Return a random alphanumeric secret (no ``/``, ``+`` or ``=``)."""

    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _parse_port(value: int | str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise UsageError(f"SSH port must be an integer, got {value!r}.") from exc
    if not 1 <= port <= 65535:
        raise UsageError(f"SSH port {port} is outside the valid range (1-65535).")
    return port


def compose_project_name(install_dir: str) -> str:
    """Project name docker compose derives from the manifest directory."""

    basename = posixpath.basename(posixpath.normpath(install_dir))
    return re.sub(r"[^a-z0-9_-]", "", basename.lower())


def _validate_install_dir(install_dir: str) -> str:
    """Return ``install_dir`` normalised; it must be absolute and not the root."""

    if not posixpath.isabs(install_dir):
        raise UsageError(f"Installation directory (-i) must be an absolute path, got {install_dir!r}.")
    normalised = posixpath.normpath(install_dir)
    if not compose_project_name(normalised):
        raise UsageError(f"Installation directory (-i) {install_dir!r} cannot be used as a compose project.")
    return normalised


@dataclass(frozen=True)
class InstallationRequest:
    """A validated provisioning request."""

    domain: str
    password: str
    email: str = ""
    production: bool = False
    install_dir: str = DEFAULT_INSTALL_DIR
    ssh_port: int = DEFAULT_SSH_PORT
    password_generated: bool = False

    @property
    def mode(self) -> str:
        return "production" if self.production else "development"

    def path(self, *parts: str) -> str:
        return posixpath.join(self.install_dir, *parts)


def resolve_request(
    domain: Optional[str],
    password: Optional[str] = None,
    email: Optional[str] = None,
    production: bool = False,
    install_dir: Optional[str] = None,
    ssh_port: int | str = DEFAULT_SSH_PORT,
) -> InstallationRequest:
    """Validate raw parameters and fill in the generated password.

    Raises :class:`UsageError` without touching the system.
    """

    domain = (domain or "").strip()
    email = (email or "").strip()
    if not domain:
        raise UsageError("Domain name (-d) is required.")
    if production and not email:
        raise UsageError("Email (-e) is required for production mode with Let's Encrypt.")
    port = _parse_port(ssh_port)
    directory = _validate_install_dir(install_dir or DEFAULT_INSTALL_DIR)

    generated = not password
    return InstallationRequest(
        domain=domain,
        password=generate_password() if generated else password,
        email=email,
        production=production,
        install_dir=directory,
        ssh_port=port,
        password_generated=generated,
    )


@dataclass(frozen=True)
class UninstallRequest:
    """Parameters of the decommission workflow."""

    install_dir: str = DEFAULT_INSTALL_DIR
    remove_volumes: bool = False
    domain: Optional[str] = None
    remove_install_dir: bool = False

    def __post_init__(self):
        if not self.install_dir:
            raise UsageError("Installation directory (-i) is required.")
        object.__setattr__(self, "install_dir", _validate_install_dir(self.install_dir))

    @property
    def volume_names(self) -> list[str]:
        project = compose_project_name(self.install_dir)
        return [f"{project}_{volume}" for volume in NAMED_VOLUMES]
