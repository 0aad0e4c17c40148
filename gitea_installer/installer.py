"""Provisioning workflow: one linear run from a validated request to a started service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from gitea_installer.config import defaults
from gitea_installer.config.env_profiles import ImageProfile, resolve_profile
from gitea_installer.errors import ExternalToolError
from gitea_installer.host import Host
from gitea_installer.line_store import (
    CrontabLineStore,
    FileLineStore,
    ensure_line,
    mentions,
)
from gitea_installer.logging_utils import get_logger
from gitea_installer.models import InstallationRequest
from gitea_installer.pipeline import PipelineResult, Step, run_pipeline
from gitea_installer import templates
from gitea_installer.templates import TemplateContext
from gitea_installer.tools.compose import ComposeCLI
from gitea_installer.tools.firewall import configure_firewall
from gitea_installer.tools.prerequisites import ensure_prerequisites
from gitea_installer.tools.tls_cert_manager import TLSCertManager

LOGGER = get_logger(__name__)


@dataclass
class InstallPaths:
    compose_file: str
    temp_compose_file: str
    nginx_conf: str
    ssl_dir: str
    conf_dir: str
    temp_conf_dir: str
    temp_nginx_conf: str
    summary: str

    @classmethod
    def for_request(cls, request: InstallationRequest) -> "InstallPaths":
        return cls(
            compose_file=request.path(defaults.COMPOSE_FILENAME),
            temp_compose_file=request.path(defaults.TEMP_COMPOSE_FILENAME),
            nginx_conf=request.path(defaults.CONF_SUBDIR, defaults.NGINX_CONF_NAME),
            ssl_dir=request.path(defaults.SSL_SUBDIR),
            conf_dir=request.path(defaults.CONF_SUBDIR),
            temp_conf_dir=request.path(defaults.TEMP_CONF_SUBDIR),
            temp_nginx_conf=request.path(defaults.TEMP_CONF_SUBDIR, defaults.NGINX_CONF_NAME),
            summary=request.path(defaults.SUMMARY_FILENAME),
        )


@dataclass
class InstallResult:
    request: InstallationRequest
    pipeline: PipelineResult

    @property
    def ok(self) -> bool:
        return self.pipeline.ok


class Provisioner:
    """Holds the state shared between provisioning steps."""

    def __init__(
        self,
        request: InstallationRequest,
        host: Host,
        *,
        profile: Optional[ImageProfile] = None,
        hosts_file: str = defaults.HOSTS_FILE,
    ):
        self.request = request
        self.host = host
        self.paths = InstallPaths.for_request(request)
        self.context = TemplateContext.from_request(request, profile or resolve_profile())
        self.hosts_file = hosts_file
        self.compose_command: List[str] = []

    def steps(self) -> List[Step]:
        return [
            Step("Check prerequisites", self.check_prerequisites),
            Step("Render configuration", self.render_configuration),
            Step("Acquire TLS certificates", self.acquire_certificates),
            Step("Start services", self.start_services),
            Step("Configure firewall", self.configure_firewall),
            Step("Write summary", self.write_summary),
        ]

    def _write(self, path: str, text: str, mode: Optional[int] = None) -> None:
        self.host.write_text(path, text, mode)
        LOGGER.info("Wrote %s", path)

    def _compose(self, compose_file: str) -> ComposeCLI:
        return ComposeCLI(self.host, self.compose_command, compose_file)

    def check_prerequisites(self) -> str:
        report = ensure_prerequisites(self.host, self.request.production)
        self.compose_command = report.compose_command
        return report.describe()

    def render_configuration(self) -> str:
        self.host.makedirs(self.paths.ssl_dir)
        self.host.makedirs(self.paths.conf_dir)
        self._write(self.paths.compose_file, templates.render_compose(self.context))
        self._write(self.paths.nginx_conf, templates.render_nginx_conf(self.context))
        return f"rendered {self.paths.compose_file} and {self.paths.nginx_conf}"

    def acquire_certificates(self) -> str:
        if self.request.production:
            return self._acquire_production_certificates()
        return self._acquire_development_certificates()

    def _acquire_development_certificates(self) -> str:
        certs = TLSCertManager(self.host, self.paths.ssl_dir)
        certs.generate_self_signed(self.request.domain)
        added = ensure_line(
            FileLineStore(self.host, self.hosts_file),
            mentions(self.request.domain),
            templates.render_hosts_entry(self.context),
        )
        hosts_note = "hosts entry added" if added else "hosts entry already present"
        return f"self-signed certificate for {self.request.domain}; {hosts_note}"

    def _acquire_production_certificates(self) -> str:
        certs = TLSCertManager(self.host, self.paths.ssl_dir)
        self.host.makedirs(self.paths.temp_conf_dir)
        self._write(self.paths.temp_nginx_conf, templates.render_acme_nginx_conf(self.context))
        self._write(self.paths.temp_compose_file, templates.render_temp_compose(self.context))
        # Throwaway material so nginx can bind 443 before issuance.
        certs.generate_self_signed(self.request.domain)
        self.host.makedirs(self.context.acme_webroot)

        temp_proxy = self._compose(self.paths.temp_compose_file)
        try:
            temp_proxy.up()
            try:
                live_dir = certs.request_letsencrypt(self.request.domain, self.request.email)
                certs.install_issued(live_dir)
            finally:
                temp_proxy.down()
        finally:
            self.host.remove(self.paths.temp_compose_file)
            self.host.remove_tree(self.paths.temp_conf_dir)

        ensure_line(
            CrontabLineStore(self.host),
            mentions(self.request.domain, "certbot renew"),
            templates.render_renewal_cron(self.context),
        )
        return f"Let's Encrypt certificate for {self.request.domain}; renewal scheduled"

    def start_services(self) -> str:
        compose = self._compose(self.paths.compose_file)
        compose.pull()
        try:
            compose.up()
        except ExternalToolError:
            LOGGER.error("Recent service logs:\n%s", compose.logs())
            raise
        LOGGER.info("Service status:\n%s", compose.ps())
        return "services started"

    def configure_firewall(self) -> str:
        return configure_firewall(self.host, self.request.ssh_port)

    def write_summary(self) -> str:
        self._write(self.paths.summary, templates.render_summary(self.context), mode=0o600)
        return f"summary written to {self.paths.summary}"


def provision(
    request: InstallationRequest,
    host: Host,
    *,
    profile: Optional[ImageProfile] = None,
    hosts_file: str = defaults.HOSTS_FILE,
) -> InstallResult:
    """Run the provisioning workflow; stops at the first failing step."""

    provisioner = Provisioner(request, host, profile=profile, hosts_file=hosts_file)
    LOGGER.info(
        "Provisioning %s (%s mode) into %s on %s",
        request.domain,
        request.mode,
        request.install_dir,
        host.name,
    )
    outcome = run_pipeline(provisioner.steps())
    return InstallResult(request=request, pipeline=outcome)
