"""前置工具检查测试。Prerequisite assurance tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from gitea_installer.config import defaults
from gitea_installer.errors import PrerequisiteError
from gitea_installer.tools.compose import find_compose_command, require_compose_command
from gitea_installer.tools.prerequisites import (
    detect_package_manager,
    ensure_compose,
    ensure_prerequisites,
    ensure_tool,
)
from tests.test_utils import FakeHost


class TestEnsureTool:
    """测试单个工具。Single tool."""

    def test_present_tool_is_not_installed(self, fake_host: FakeHost):
        assert ensure_tool(fake_host, "docker", ["docker"]) is False
        assert fake_host.commands == []

    def test_installs_with_apt(self):
        host = FakeHost(tools=["apt-get"])
        assert ensure_tool(host, "openssl", ["openssl"]) is True
        assert host.commands == [
            ["apt-get", "update"],
            ["apt-get", "install", "-y", "openssl"],
        ]

    def test_prefers_apt_over_dnf(self):
        host = FakeHost(tools=["yum", "dnf", "apt-get"])
        assert detect_package_manager(host).name == "apt-get"

    def test_dnf_before_yum_with_epel(self):
        host = FakeHost(tools=["yum", "dnf"])
        ensure_tool(host, "certbot", ["certbot", "python3-certbot-nginx"], needs_epel=True)
        assert host.commands == [
            ["dnf", "install", "-y", "epel-release"],
            ["dnf", "install", "-y", "certbot", "python3-certbot-nginx"],
        ]

    def test_no_package_manager(self):
        host = FakeHost(tools=[])
        with pytest.raises(PrerequisiteError, match="install it manually"):
            ensure_tool(host, "docker", ["docker"])

    def test_failed_install(self):
        host = FakeHost(tools=["yum"])
        host.fail("yum", "install")
        with pytest.raises(PrerequisiteError, match="yum"):
            ensure_tool(host, "docker", ["docker"])

    def test_tool_still_missing(self):
        host = FakeHost(tools=["apt-get"])
        with pytest.raises(PrerequisiteError, match="still missing"):
            ensure_tool(host, "docker", ["docker.io-not-mapped"])


class TestCompose:
    """测试 compose 检测与下载。Compose detection and download."""

    def test_standalone_binary(self, fake_host: FakeHost):
        assert find_compose_command(fake_host) == ["docker-compose"]

    def test_plugin(self):
        host = FakeHost(tools=["docker"])
        assert find_compose_command(host) == ["docker", "compose"]
        assert host.ran("docker", "compose", "version")

    def test_missing(self):
        host = FakeHost(tools=["docker"])
        host.fail("docker", "compose", "version")
        assert find_compose_command(host) is None
        with pytest.raises(PrerequisiteError):
            require_compose_command(host)

    def test_download(self):
        host = FakeHost(tools=[])
        response = MagicMock(content=b"\x7fELF compose")
        with patch("gitea_installer.tools.prerequisites.requests.get", return_value=response) as get:
            command, downloaded = ensure_compose(host)

        assert downloaded is True
        assert command == ["docker-compose"]
        get.assert_called_once_with(
            "https://github.com/docker/compose/releases/download/v2.24.6/docker-compose-Linux-x86_64",
            timeout=defaults.DOWNLOAD_TIMEOUT,
        )
        assert host.files[defaults.COMPOSE_INSTALL_PATH] == b"\x7fELF compose"
        assert host.modes[defaults.COMPOSE_INSTALL_PATH] == 0o755

    def test_download_failure(self):
        host = FakeHost(tools=[])
        with patch(
            "gitea_installer.tools.prerequisites.requests.get",
            side_effect=requests.ConnectionError("offline"),
        ):
            with pytest.raises(PrerequisiteError, match="download failed"):
                ensure_compose(host)


class TestEnsurePrerequisites:
    """测试整体检查。Whole prerequisite step."""

    def test_everything_present(self, fake_host: FakeHost):
        report = ensure_prerequisites(fake_host, production=False)
        assert report.installed == []
        assert report.compose_command == ["docker-compose"]
        assert report.describe() == "all tools already present"

    def test_certbot_only_in_production(self, fake_host: FakeHost):
        ensure_prerequisites(fake_host, production=False)
        assert not fake_host.ran("apt-get", "install", "-y", "certbot", "python3-certbot-nginx")

        report = ensure_prerequisites(fake_host, production=True)
        assert report.installed == ["certbot"]
        assert fake_host.ran("apt-get", "install", "-y", "certbot", "python3-certbot-nginx")

    def test_rerun_does_not_reinstall(self):
        host = FakeHost(tools=["apt-get", "docker-compose"])
        first = ensure_prerequisites(host, production=True)
        installs = len(host.commands_starting("apt-get", "install"))
        second = ensure_prerequisites(host, production=True)

        assert first.installed == ["docker", "openssl", "certbot"]
        assert second.installed == []
        assert len(host.commands_starting("apt-get", "install")) == installs
