"""安装器异常体系。Exception hierarchy for the installer."""

from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """所有安装器错误的基类。Base class for installer failures."""


class UsageError(InstallerError):
    """Raised when a required parameter is missing or invalid."""


class PrerequisiteError(InstallerError):
    """Raised when a required tool cannot be located or installed."""


class ExternalToolError(InstallerError):
    """外部命令返回非零退出码。Raised when an external command exits non-zero."""

    def __init__(
        self,
        description: str,
        command: Sequence[str],
        returncode: int,
        output: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.output = output[-600:].strip()
        message = f"{description} failed (exit {returncode}): {' '.join(self.command)}"
        if self.output:
            message = f"{message}\n{self.output}"
        super().__init__(message)
