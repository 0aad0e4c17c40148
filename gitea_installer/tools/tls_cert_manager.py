from __future__ import annotations

import posixpath
from dataclasses import dataclass

from gitea_installer.config import defaults
from gitea_installer.host import Host
from gitea_installer.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass
class TLSCertInfo:
    cert_path: str
    key_path: str


class TLSCertManager:
    """Manage the proxy's key/certificate pair under ``nginx/ssl``."""

    def __init__(self, host: Host, ssl_dir: str):
        self.host = host
        self.ssl_dir = ssl_dir

    @property
    def info(self) -> TLSCertInfo:
        return TLSCertInfo(
            cert_path=posixpath.join(self.ssl_dir, defaults.CERT_FILENAME),
            key_path=posixpath.join(self.ssl_dir, defaults.KEY_FILENAME),
        )

    def generate_self_signed(self, domain: str) -> TLSCertInfo:
        """Write a fresh self-signed certificate for ``domain`` over the final paths.

        Used as the development certificate and as the throwaway certificate
        that lets the proxy bind 443 before real issuance. Existing files are
        overwritten.
        """

        info = self.info
        self.host.makedirs(self.ssl_dir)
        self.host.run_checked(
            [
                "openssl", "req", "-x509", "-nodes",
                "-days", str(defaults.CERT_VALIDITY_DAYS),
                "-newkey", f"rsa:{defaults.RSA_KEY_BITS}",
                "-keyout", info.key_path,
                "-out", info.cert_path,
                "-subj", f"/CN={domain}",
            ],
            f"Generate self-signed certificate for {domain}",
        )
        self.host.run_checked(["chmod", "600", info.key_path], "Restrict private key permissions")
        self.host.run_checked(["chmod", "644", info.cert_path], "Set certificate permissions")
        logger.info("Self-signed certificate written to %s", info.cert_path)
        return info

    def request_letsencrypt(self, domain: str, email: str, webroot: str = defaults.ACME_WEBROOT) -> str:
        """Run certbot in webroot mode; returns the live directory of the new lineage."""

        self.host.makedirs(webroot)
        self.host.run_checked(
            [
                "certbot", "certonly", "--webroot",
                "-w", webroot,
                "-d", domain,
                "--email", email,
                "--agree-tos",
                "--non-interactive",
            ],
            f"Request Let's Encrypt certificate for {domain}",
        )
        return posixpath.join(defaults.LETSENCRYPT_LIVE_DIR, domain)

    def install_issued(self, live_dir: str) -> TLSCertInfo:
        """Copy the issued chain and key over the current files."""

        info = self.info
        self.host.copy_file(posixpath.join(live_dir, "fullchain.pem"), info.cert_path)
        self.host.copy_file(posixpath.join(live_dir, "privkey.pem"), info.key_path)
        logger.info("Let's Encrypt certificate installed to %s", info.cert_path)
        return info
