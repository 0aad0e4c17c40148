"""pytest 配置和共享 fixtures。pytest configuration and shared fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from gitea_installer.config.env_profiles import DEFAULT_PROFILE
from gitea_installer.models import InstallationRequest, resolve_request
from gitea_installer.templates import TemplateContext
from tests.test_utils import FakeHost

DOMAIN = "gitea.example.com"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录 fixture。Temporary directory fixture."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def _no_image_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep operator environment overrides out of rendered templates."""
    for key in (
        "GITEA_INSTALLER_GITEA_IMAGE",
        "GITEA_INSTALLER_POSTGRES_IMAGE",
        "GITEA_INSTALLER_NGINX_IMAGE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_host() -> FakeHost:
    """内存主机 fixture。In-memory host fixture."""
    return FakeHost()


@pytest.fixture
def dev_request() -> InstallationRequest:
    """开发模式请求。Development-mode request."""
    return resolve_request(domain=DOMAIN, password="SecurePassword123", install_dir="/opt/gitea")


@pytest.fixture
def prod_request() -> InstallationRequest:
    """生产模式请求。Production-mode request."""
    return resolve_request(
        domain=DOMAIN,
        email="admin@example.com",
        production=True,
        install_dir="/opt/gitea",
        ssh_port=2222,
    )


@pytest.fixture
def dev_context(dev_request: InstallationRequest) -> TemplateContext:
    """模板上下文。Template context for the development request."""
    return TemplateContext.from_request(dev_request, DEFAULT_PROFILE)
