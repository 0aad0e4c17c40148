"""Utilities for provisioning a remote machine over SSH."""

from __future__ import annotations

import os
import posixpath
import shlex
import socket
import time
from pathlib import Path
from typing import Iterable, Optional

import paramiko

from gitea_installer.errors import PrerequisiteError
from gitea_installer.host import CommandResult, Host
from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

RECV_CHUNK = 4096
POLL_INTERVAL = 0.1


class SSHKeyLoadError(PrerequisiteError):
    """Raised when a private key cannot be parsed."""


def parse_target(target: str) -> tuple[str, str]:
    """Split ``user@host`` into ``(user, host)``; the user defaults to ``root``."""

    user, sep, hostname = target.rpartition("@")
    if not sep:
        return "root", target
    return user or "root", hostname


def _candidate_keys() -> Iterable[type[paramiko.PKey]]:
    """Yield supported Paramiko key classes in preferred order."""

    return (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def load_private_key(path: str | os.PathLike[str]) -> paramiko.PKey:
    """Load a private key from ``path``.

    Keys are attempted in the order Ed25519 → ECDSA → RSA.  DSA keys are
    deliberately unsupported because Paramiko 3.x removed ``DSSKey``.
    """

    key_path = Path(path).expanduser()
    if key_path.is_dir():
        raise SSHKeyLoadError(f"Private key path is a directory: {key_path}")

    if not key_path.exists():
        raise SSHKeyLoadError(f"Private key file does not exist: {key_path}")

    errors: list[str] = []
    for key_cls in _candidate_keys():
        try:
            return key_cls.from_private_key_file(str(key_path))
        except paramiko.PasswordRequiredException as exc:
            raise SSHKeyLoadError(
                f"Private key {key_path} is passphrase protected; unlock it with ssh-agent first."
            ) from exc
        except paramiko.SSHException as exc:
            errors.append(str(exc))

    joined = "; ".join(filter(None, errors)) or "unknown error"
    raise SSHKeyLoadError(f"Unable to parse private key {key_path}: {joined}")


def _drain(channel: paramiko.Channel) -> tuple[str, str]:
    """Read stdout and stderr as they arrive until the command exits.

    Both streams are consumed in the same loop so a chatty stderr cannot fill
    the channel window while stdout is still being read.
    """

    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []
    while True:
        received = False
        if channel.recv_ready():
            data = channel.recv(RECV_CHUNK)
            if data:
                stdout_chunks.append(data)
                received = True
        if channel.recv_stderr_ready():
            data = channel.recv_stderr(RECV_CHUNK)
            if data:
                stderr_chunks.append(data)
                received = True
        if received:
            continue
        if channel.exit_status_ready():
            break
        time.sleep(POLL_INTERVAL)

    return (
        b"".join(stdout_chunks).decode("utf-8", errors="replace"),
        b"".join(stderr_chunks).decode("utf-8", errors="replace"),
    )


class SSHHost(Host):
    """Run commands and write files on a remote machine through Paramiko."""

    def __init__(
        self,
        hostname: str,
        username: str = "root",
        *,
        port: int = 22,
        key_path: Optional[str] = None,
        timeout: int = 20,
    ):
        self.name = f"{username}@{hostname}"
        self._username = username
        self._client = paramiko.SSHClient()
        self._client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        self._sftp: Optional[paramiko.SFTPClient] = None

        pkey = load_private_key(key_path) if key_path else None
        LOGGER.info("Connecting to %s:%s", self.name, port)
        try:
            self._client.connect(
                hostname,
                port=port,
                username=username,
                pkey=pkey,
                allow_agent=pkey is None,
                look_for_keys=pkey is None,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
            )
        except paramiko.AuthenticationException as exc:  # pragma: no cover - network
            raise PrerequisiteError(f"SSH authentication to {self.name} failed") from exc
        except (paramiko.SSHException, socket.error) as exc:  # pragma: no cover - network
            raise PrerequisiteError(f"Cannot connect to {self.name}:{port}: {exc}") from exc

    def __repr__(self):
        return f"{SSHHost.__name__}({self.name!r})"

    def _open_sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            self._sftp = self._client.open_sftp()
        return self._sftp

    def run(self, argv, *, input=None):
        stdin, stdout, stderr = self._client.exec_command(shlex.join(argv))
        if input is not None:
            stdin.write(input)
            stdin.channel.shutdown_write()
        out, err = _drain(stdout.channel)
        exit_status = stdout.channel.recv_exit_status()
        return CommandResult(exit_status, out, err)

    def which(self, tool):
        result = self.run(["sh", "-c", f"command -v {shlex.quote(tool)}"])
        return result.returncode == 0

    def read_text(self, path):
        try:
            with self._open_sftp().open(path, "r") as handle:
                return handle.read().decode("utf-8", errors="replace")
        except FileNotFoundError:
            return None

    def write_bytes(self, path, data, mode=None):
        parent = posixpath.dirname(path)
        if parent:
            self.makedirs(parent)
        sftp = self._open_sftp()
        with sftp.open(path, "wb") as handle:
            handle.write(data)
        if mode is not None:
            sftp.chmod(path, mode)

    def makedirs(self, path):
        self.run_checked(["mkdir", "-p", path], f"Create {path}")

    def exists(self, path):
        try:
            self._open_sftp().stat(path)
        except FileNotFoundError:
            return False
        return True

    def remove(self, path):
        self.run_checked(["rm", "-f", path], f"Remove {path}")

    def remove_tree(self, path):
        self.run_checked(["rm", "-rf", path], f"Remove {path}")

    def is_root(self):
        return self._username == "root" or self.run(["id", "-u"]).stdout.strip() == "0"

    def close(self):
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        self._client.close()
