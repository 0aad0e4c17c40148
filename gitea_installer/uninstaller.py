"""Decommission workflow: stop the topology and undo host-level changes.

Every step tolerates a resource that is already gone. Volume deletion and
removal of the installation directory only happen when explicitly requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from gitea_installer.config import defaults
from gitea_installer.host import Host
from gitea_installer.line_store import (
    CrontabLineStore,
    FileLineStore,
    maps_hostname,
    mentions,
    remove_lines,
)
from gitea_installer.logging_utils import get_logger
from gitea_installer.models import UninstallRequest
from gitea_installer.pipeline import PipelineResult, Step, run_pipeline, skipped
from gitea_installer.tools.compose import ComposeCLI, remove_volume, require_compose_command

LOGGER = get_logger(__name__)


@dataclass
class UninstallResult:
    request: UninstallRequest
    pipeline: PipelineResult

    @property
    def ok(self) -> bool:
        return self.pipeline.ok


class Decommissioner:

    def __init__(
        self,
        request: UninstallRequest,
        host: Host,
        *,
        hosts_file: str = defaults.HOSTS_FILE,
    ):
        self.request = request
        self.host = host
        self.hosts_file = hosts_file
        self.compose_file = f"{request.install_dir.rstrip('/')}/{defaults.COMPOSE_FILENAME}"

    def steps(self) -> List[Step]:
        return [
            Step("Stop services", self.stop_services),
            Step("Remove volumes", self.remove_volumes),
            Step("Remove hosts entry", self.remove_hosts_entry),
            Step("Remove renewal task", self.remove_renewal_task),
            Step("Remove installation directory", self.remove_install_dir),
        ]

    def stop_services(self) -> str:
        if not self.host.exists(self.compose_file):
            LOGGER.warning("%s not found; assuming services are not running", self.compose_file)
            return skipped("no compose manifest")
        compose = ComposeCLI(self.host, require_compose_command(self.host), self.compose_file)
        compose.down(volumes=self.request.remove_volumes)
        return "services stopped"

    def remove_volumes(self) -> str:
        if not self.request.remove_volumes:
            return skipped("volumes kept")
        if not self.host.which("docker"):
            LOGGER.warning("docker not found; cannot remove volumes")
            return skipped("docker not installed")
        removed = [name for name in self.request.volume_names if remove_volume(self.host, name)]
        if not removed:
            return "no volumes left to remove"
        return "removed " + ", ".join(removed)

    def remove_hosts_entry(self) -> str:
        if not self.request.domain:
            return skipped("no domain given")
        count = remove_lines(FileLineStore(self.host, self.hosts_file), maps_hostname(self.request.domain))
        return f"removed {count} hosts entr{'y' if count == 1 else 'ies'}"

    def remove_renewal_task(self) -> str:
        if not self.request.domain:
            return skipped("no domain given")
        count = remove_lines(CrontabLineStore(self.host), mentions(self.request.domain))
        return f"removed {count} crontab line{'' if count == 1 else 's'}"

    def remove_install_dir(self) -> str:
        if not self.request.remove_install_dir:
            return skipped("installation directory kept")
        if not self.host.exists(self.request.install_dir):
            return skipped(f"{self.request.install_dir} does not exist")
        self.host.remove_tree(self.request.install_dir)
        return f"removed {self.request.install_dir}"


def decommission(
    request: UninstallRequest,
    host: Host,
    *,
    hosts_file: str = defaults.HOSTS_FILE,
) -> UninstallResult:
    """Run the decommission workflow; stops at the first failing step."""

    LOGGER.info("Decommissioning %s on %s", request.install_dir, host.name)
    outcome = run_pipeline(Decommissioner(request, host, hosts_file=hosts_file).steps())
    return UninstallResult(request=request, pipeline=outcome)
