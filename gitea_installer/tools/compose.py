"""Thin wrapper around the compose orchestrator and the docker CLI."""

from __future__ import annotations

from typing import List, Sequence

from gitea_installer.errors import PrerequisiteError
from gitea_installer.host import Host
from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

STANDALONE_COMPOSE = ("docker-compose",)
PLUGIN_COMPOSE = ("docker", "compose")


def find_compose_command(host: Host) -> List[str] | None:
    """Return the argv prefix of an available compose implementation."""

    if host.which(STANDALONE_COMPOSE[0]):
        return list(STANDALONE_COMPOSE)
    if host.which("docker") and host.run([*PLUGIN_COMPOSE, "version"]).returncode == 0:
        return list(PLUGIN_COMPOSE)
    return None


def require_compose_command(host: Host) -> List[str]:
    command = find_compose_command(host)
    if command is None:
        raise PrerequisiteError("Docker Compose is not installed (neither docker-compose nor docker compose).")
    return command


class ComposeCLI:
    """Run compose subcommands against one manifest file."""

    def __init__(self, host: Host, command: Sequence[str], compose_file: str):
        self._host = host
        self._command = list(command)
        self.compose_file = compose_file

    def __repr__(self):
        return f"{ComposeCLI.__name__}({self.compose_file!r})"

    def _argv(self, *args: str) -> List[str]:
        return [*self._command, "-f", self.compose_file, *args]

    def pull(self) -> None:
        self._host.run_checked(self._argv("pull"), "Pull images")

    def up(self, detached: bool = True) -> None:
        self._host.run_checked(self._argv("up", *(["-d"] if detached else [])), "Start services")

    def down(self, volumes: bool = False) -> None:
        self._host.run_checked(self._argv("down", *(["--volumes"] if volumes else [])), "Stop services")

    def ps(self) -> str:
        return self._host.run_checked(self._argv("ps"), "List services")

    def logs(self, tail: int = 50) -> str:
        """Best-effort log tail; a failure here returns whatever was captured."""

        result = self._host.run(self._argv("logs", "--no-color", "--tail", str(tail)))
        return result.stdout or result.stderr


def volume_exists(host: Host, volume: str) -> bool:
    return host.run(["docker", "volume", "inspect", volume]).returncode == 0


def remove_volume(host: Host, volume: str) -> bool:
    """Delete ``volume``; returns ``False`` when it did not exist."""

    if not volume_exists(host, volume):
        LOGGER.info("Volume %s not found; nothing to remove", volume)
        return False
    host.run_checked(["docker", "volume", "rm", volume], f"Remove volume {volume}")
    return True
