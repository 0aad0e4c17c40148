"""主机抽象测试。Host abstraction tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitea_installer import ssh_utils
from gitea_installer.errors import ExternalToolError
from gitea_installer.host import LocalHost
from gitea_installer.ssh_utils import SSHHost, SSHKeyLoadError, load_private_key, parse_target


class TestLocalHost:
    """本地主机测试类。"""

    def test_run_captures_output(self):
        result = LocalHost().run(["sh", "-c", "echo out; echo err >&2; exit 3"])
        assert result.returncode == 3
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"

    def test_run_passes_input(self):
        assert LocalHost().run(["cat"], input="hello").stdout == "hello"

    def test_missing_program(self):
        assert LocalHost().run(["definitely-not-a-real-program-xyz"]).returncode == 127

    def test_run_checked_raises(self):
        with pytest.raises(ExternalToolError) as excinfo:
            LocalHost().run_checked(["sh", "-c", "echo boom >&2; exit 2"], "Explode")
        assert excinfo.value.returncode == 2
        assert excinfo.value.output == "boom"
        assert str(excinfo.value).startswith("Explode failed (exit 2)")

    def test_file_operations(self, temp_dir: Path):
        host = LocalHost()
        target = temp_dir / "nested" / "dir" / "README.md"

        assert host.read_text(str(target)) is None
        host.write_text(str(target), "secret\n", mode=0o600)
        assert host.read_text(str(target)) == "secret\n"
        assert target.stat().st_mode & 0o777 == 0o600
        assert host.exists(str(target))

        host.copy_file(str(target), str(temp_dir / "copy.md"))
        assert (temp_dir / "copy.md").read_text() == "secret\n"

        host.remove(str(target))
        host.remove(str(target))
        assert not target.exists()

        host.remove_tree(str(temp_dir / "nested"))
        host.remove_tree(str(temp_dir / "nested"))
        assert not (temp_dir / "nested").exists()

    def test_context_manager(self):
        with LocalHost() as host:
            assert host.which("sh")


class TestParseTarget:
    """目标解析测试。"""

    @pytest.mark.parametrize(
        "target, expected",
        [
            ("deploy@git.example.com", ("deploy", "git.example.com")),
            ("git.example.com", ("root", "git.example.com")),
            ("@10.0.0.5", ("root", "10.0.0.5")),
        ],
    )
    def test_parse(self, target, expected):
        assert parse_target(target) == expected


class TestLoadPrivateKey:
    """私钥加载测试。"""

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(SSHKeyLoadError, match="does not exist"):
            load_private_key(temp_dir / "id_ed25519")

    def test_directory(self, temp_dir: Path):
        with pytest.raises(SSHKeyLoadError, match="is a directory"):
            load_private_key(temp_dir)

    def test_garbage(self, temp_dir: Path):
        key = temp_dir / "id_rsa"
        key.write_text("not a key\n")
        with pytest.raises(SSHKeyLoadError, match="Unable to parse"):
            load_private_key(key)


@pytest.fixture
def ssh_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    client = MagicMock()
    monkeypatch.setattr(ssh_utils.paramiko, "SSHClient", lambda: client)
    return client


class FakeChannel:
    """按块交付输出的通道。Channel that hands out queued chunks."""

    def __init__(self, stdout=(), stderr=(), status: int = 0):
        self.stdout = list(stdout)
        self.stderr = list(stderr)
        self.status = status
        self.reads: list[str] = []

    def recv_ready(self):
        return bool(self.stdout)

    def recv(self, size):
        self.reads.append("stdout")
        return self.stdout.pop(0)

    def recv_stderr_ready(self):
        return bool(self.stderr)

    def recv_stderr(self, size):
        self.reads.append("stderr")
        return self.stderr.pop(0)

    def exit_status_ready(self):
        return not self.stdout and not self.stderr

    def recv_exit_status(self):
        return self.status


def _channel_output(client: MagicMock, stdout: bytes = b"", stderr: bytes = b"", status: int = 0) -> MagicMock:
    stdin, out, err = MagicMock(), MagicMock(), MagicMock()
    out.channel = FakeChannel([stdout] if stdout else [], [stderr] if stderr else [], status)
    client.exec_command.return_value = (stdin, out, err)
    return stdin


class TestSSHHost:
    """远程主机测试类。"""

    def test_connect_uses_agent_without_key(self, ssh_client: MagicMock):
        host = SSHHost("git.example.com", "deploy", port=2200)

        kwargs = ssh_client.connect.call_args.kwargs
        assert ssh_client.connect.call_args.args == ("git.example.com",)
        assert kwargs["port"] == 2200
        assert kwargs["username"] == "deploy"
        assert kwargs["pkey"] is None
        assert kwargs["allow_agent"] is True
        assert host.name == "deploy@git.example.com"

    def test_run_quotes_and_feeds_input(self, ssh_client: MagicMock):
        stdin = _channel_output(ssh_client, stdout=b"ok\n", status=0)
        host = SSHHost("git.example.com")

        result = host.run(["crontab", "-"], input="0 3 * * * certbot renew\n")

        ssh_client.exec_command.assert_called_once_with("crontab -")
        stdin.write.assert_called_once_with("0 3 * * * certbot renew\n")
        stdin.channel.shutdown_write.assert_called_once()
        assert (result.returncode, result.stdout) == (0, "ok\n")

    def test_run_reads_streams_as_they_arrive(self, ssh_client: MagicMock):
        stdin, out, err = MagicMock(), MagicMock(), MagicMock()
        channel = FakeChannel(
            stdout=[b"pulling ", b"done\n"],
            stderr=[b"x" * 4096, b"y" * 4096, b"z" * 4096],
            status=0,
        )
        out.channel = channel
        ssh_client.exec_command.return_value = (stdin, out, err)

        result = SSHHost("git.example.com").run(["docker-compose", "pull"])

        assert result.stdout == "pulling done\n"
        assert result.stderr == "x" * 4096 + "y" * 4096 + "z" * 4096
        # stderr is consumed before stdout is exhausted
        assert channel.reads[:2] == ["stdout", "stderr"]
        out.read.assert_not_called()
        err.read.assert_not_called()

    def test_run_checked_failure(self, ssh_client: MagicMock):
        _channel_output(ssh_client, stderr=b"permission denied", status=1)
        host = SSHHost("git.example.com", "deploy")
        with pytest.raises(ExternalToolError, match="permission denied"):
            host.run_checked(["mkdir", "-p", "/opt/gitea data"], "Create dir")
        ssh_client.exec_command.assert_called_once_with("mkdir -p '/opt/gitea data'")

    def test_is_root_checks_uid(self, ssh_client: MagicMock):
        _channel_output(ssh_client, stdout=b"1000\n")
        assert not SSHHost("git.example.com", "deploy").is_root()
        assert SSHHost("git.example.com", "root").is_root()

    def test_write_bytes_uses_sftp(self, ssh_client: MagicMock):
        _channel_output(ssh_client)
        sftp = ssh_client.open_sftp.return_value
        host = SSHHost("git.example.com")

        host.write_bytes("/opt/gitea/README.md", b"data", mode=0o600)

        ssh_client.exec_command.assert_called_once_with("mkdir -p /opt/gitea")
        sftp.open.assert_called_once_with("/opt/gitea/README.md", "wb")
        sftp.open.return_value.__enter__.return_value.write.assert_called_once_with(b"data")
        sftp.chmod.assert_called_once_with("/opt/gitea/README.md", 0o600)

    def test_missing_remote_file(self, ssh_client: MagicMock):
        sftp = ssh_client.open_sftp.return_value
        sftp.open.side_effect = FileNotFoundError
        sftp.stat.side_effect = FileNotFoundError
        host = SSHHost("git.example.com")

        assert host.read_text("/etc/hosts") is None
        assert not host.exists("/opt/gitea")

    def test_close(self, ssh_client: MagicMock):
        sftp = ssh_client.open_sftp.return_value
        with SSHHost("git.example.com") as host:
            host.exists("/opt/gitea")
        sftp.close.assert_called_once()
        ssh_client.close.assert_called_once()
