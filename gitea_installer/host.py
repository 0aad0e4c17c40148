"""Where commands run and files land.

Both workflows talk to a :class:`Host` instead of calling ``subprocess`` or
touching the filesystem directly. :class:`LocalHost` is the machine running
the installer; :class:`gitea_installer.ssh_utils.SSHHost` drives a remote
machine over SSH.
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from gitea_installer.errors import ExternalToolError
from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

_SUBPROCESS_TEXT_KWARGS = {"text": True, "encoding": "utf-8", "errors": "replace"}


@dataclass
class CommandResult:
    """外部命令的执行结果。Result of an external command."""

    returncode: int
    stdout: str
    stderr: str


class Host(metaclass=ABCMeta):

    name = "host"

    @abstractmethod
    def run(self, argv: Sequence[str], *, input: Optional[str] = None) -> CommandResult:
        pass

    def run_checked(
        self,
        argv: Sequence[str],
        description: str,
        *,
        input: Optional[str] = None,
    ) -> str:
        """Run ``argv`` and return stdout, raising on a non-zero exit."""

        LOGGER.info("%s: %s", description, shlex.join(argv))
        result = self.run(argv, input=input)
        if result.returncode != 0:
            output = result.stderr or result.stdout
            LOGGER.error("%s failed: %s", description, output.strip()[-600:])
            raise ExternalToolError(description, argv, result.returncode, output)
        return result.stdout

    @abstractmethod
    def which(self, tool: str) -> bool:
        pass

    @abstractmethod
    def read_text(self, path: str) -> Optional[str]:
        """Return the file content, or ``None`` when it does not exist."""

    @abstractmethod
    def write_bytes(self, path: str, data: bytes, mode: Optional[int] = None) -> None:
        pass

    def write_text(self, path: str, text: str, mode: Optional[int] = None) -> None:
        self.write_bytes(path, text.encode("utf-8"), mode)

    @abstractmethod
    def makedirs(self, path: str) -> None:
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def remove(self, path: str) -> None:
        pass

    @abstractmethod
    def remove_tree(self, path: str) -> None:
        pass

    def copy_file(self, src: str, dst: str) -> None:
        self.run_checked(["cp", src, dst], f"Copy {src}")

    def symlink(self, target: str, link: str) -> None:
        self.run_checked(["ln", "-sf", target, link], f"Link {link}")

    @abstractmethod
    def is_root(self) -> bool:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class LocalHost(Host):

    name = "localhost"

    def __repr__(self):
        return f"{LocalHost.__name__}()"

    def run(self, argv, *, input=None):
        try:
            proc = subprocess.run(
                list(argv),
                input=input,
                capture_output=True,
                **_SUBPROCESS_TEXT_KWARGS,
            )
        except FileNotFoundError as exc:
            return CommandResult(127, "", str(exc))
        return CommandResult(proc.returncode, proc.stdout or "", proc.stderr or "")

    def which(self, tool):
        return shutil.which(tool) is not None

    def read_text(self, path):
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write_bytes(self, path, data, mode=None):
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        if mode is not None:
            target.chmod(mode)

    def makedirs(self, path):
        Path(path).mkdir(parents=True, exist_ok=True)

    def exists(self, path):
        return Path(path).exists()

    def remove(self, path):
        Path(path).unlink(missing_ok=True)

    def remove_tree(self, path):
        if Path(path).exists():
            shutil.rmtree(path)

    def is_root(self):
        return os.geteuid() == 0
