"""Open the proxy and SSH ports in firewalld when it is present."""

from __future__ import annotations

from gitea_installer.host import Host
from gitea_installer.logging_utils import get_logger
from gitea_installer.pipeline import skipped

LOGGER = get_logger(__name__)

FIREWALL_CMD = "firewall-cmd"
SERVICES = ("http", "https")


def configure_firewall(host: Host, ssh_port: int) -> str:
    """Permanently allow HTTP, HTTPS and ``ssh_port``/tcp, then reload.

    A missing firewall manager is not an error.
    """

    if not host.which(FIREWALL_CMD):
        LOGGER.warning("%s not found; skipping firewall configuration", FIREWALL_CMD)
        return skipped(f"{FIREWALL_CMD} not installed")

    for service in SERVICES:
        host.run_checked(
            [FIREWALL_CMD, "--permanent", f"--add-service={service}"],
            f"Allow {service} in firewall",
        )
    host.run_checked(
        [FIREWALL_CMD, "--permanent", f"--add-port={ssh_port}/tcp"],
        f"Allow port {ssh_port}/tcp in firewall",
    )
    host.run_checked([FIREWALL_CMD, "--reload"], "Reload firewall")
    return f"opened http, https and {ssh_port}/tcp"
