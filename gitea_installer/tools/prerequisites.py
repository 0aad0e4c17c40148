"""Make sure the external tools the installer drives are present.

This is the only module that calls a system package manager. Every tool is
checked first and installed only when missing, so running it again is safe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import requests

from gitea_installer.config import defaults
from gitea_installer.errors import ExternalToolError, PrerequisiteError
from gitea_installer.host import Host
from gitea_installer.logging_utils import get_logger
from gitea_installer.tools.compose import find_compose_command

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PackageManager:
    """How to install packages with one system package manager."""

    name: str
    install: Tuple[str, ...]
    refresh: Optional[Tuple[str, ...]] = None
    needs_epel: bool = False

    def install_packages(self, host: Host, packages: Sequence[str]) -> None:
        if self.refresh:
            host.run_checked(list(self.refresh), f"Refresh {self.name} package index")
        host.run_checked([*self.install, *packages], f"Install {' '.join(packages)}")


# Probed in this order: Debian family, then RPM family (dnf before yum).
PACKAGE_MANAGERS = (
    PackageManager("apt-get", ("apt-get", "install", "-y"), refresh=("apt-get", "update")),
    PackageManager("dnf", ("dnf", "install", "-y"), needs_epel=True),
    PackageManager("yum", ("yum", "install", "-y"), needs_epel=True),
)

DOCKER_PACKAGES = ("docker",)
OPENSSL_PACKAGES = ("openssl",)
CERTBOT_PACKAGES = ("certbot", "python3-certbot-nginx")


@dataclass
class PrerequisiteReport:
    compose_command: List[str]
    installed: List[str] = field(default_factory=list)

    def describe(self) -> str:
        if not self.installed:
            return "all tools already present"
        return "installed " + ", ".join(self.installed)


def detect_package_manager(host: Host) -> Optional[PackageManager]:
    for manager in PACKAGE_MANAGERS:
        if host.which(manager.name):
            return manager
    return None


def ensure_tool(
    host: Host,
    tool: str,
    packages: Sequence[str],
    *,
    needs_epel: bool = False,
) -> bool:
    """Install ``packages`` if ``tool`` is not on PATH; return ``True`` if installed."""

    if host.which(tool):
        LOGGER.info("%s is already installed", tool)
        return False

    LOGGER.info("%s is not installed. Installing...", tool)
    manager = detect_package_manager(host)
    if manager is None:
        raise PrerequisiteError(f"Unable to install {tool}. Please install it manually.")
    try:
        if needs_epel and manager.needs_epel:
            manager.install_packages(host, ["epel-release"])
        manager.install_packages(host, packages)
    except ExternalToolError as exc:
        raise PrerequisiteError(f"Unable to install {tool} with {manager.name}: {exc}") from exc
    if not host.which(tool):
        raise PrerequisiteError(f"{tool} is still missing after installing {' '.join(packages)}.")
    return True


def download_compose_binary(host: Host, version: str = defaults.COMPOSE_VERSION) -> None:
    """Fetch the standalone compose release matching the host platform."""

    system = host.run_checked(["uname", "-s"], "Detect kernel name").strip()
    machine = host.run_checked(["uname", "-m"], "Detect machine architecture").strip()
    url = defaults.COMPOSE_DOWNLOAD_URL.format(version=version, system=system, machine=machine)
    LOGGER.info("Downloading Docker Compose from %s", url)

    try:
        response = requests.get(url, timeout=defaults.DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise PrerequisiteError(f"Docker Compose download failed: {exc}") from exc

    host.write_bytes(defaults.COMPOSE_INSTALL_PATH, response.content, mode=0o755)
    host.symlink(defaults.COMPOSE_INSTALL_PATH, defaults.COMPOSE_SYMLINK_PATH)


def ensure_compose(host: Host) -> Tuple[List[str], bool]:
    """Return the compose argv prefix, downloading the binary when none exists."""

    command = find_compose_command(host)
    if command is not None:
        LOGGER.info("Using compose command: %s", " ".join(command))
        return command, False

    LOGGER.info("Docker Compose is not installed. Installing...")
    download_compose_binary(host)
    command = find_compose_command(host)
    if command is None:
        raise PrerequisiteError("Docker Compose is still unavailable after download.")
    return command, True


def ensure_prerequisites(host: Host, production: bool) -> PrerequisiteReport:
    """Check (and if needed install) docker, compose, openssl and certbot."""

    installed: List[str] = []
    if ensure_tool(host, "docker", DOCKER_PACKAGES):
        installed.append("docker")
    compose_command, downloaded = ensure_compose(host)
    if downloaded:
        installed.append("docker-compose")
    if ensure_tool(host, "openssl", OPENSSL_PACKAGES):
        installed.append("openssl")
    if production and ensure_tool(host, "certbot", CERTBOT_PACKAGES, needs_epel=True):
        installed.append("certbot")
    return PrerequisiteReport(compose_command=compose_command, installed=installed)
