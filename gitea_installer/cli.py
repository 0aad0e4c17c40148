"""命令行入口：安装与卸载 Gitea。Command-line entry points for install and uninstall.

``gitea-install`` mirrors the flags of the classic shell installer
(``-d -p -e -P -i -s -h``); ``gitea-uninstall`` takes ``-i -r -d -x -h``.
Both exit with status 1 and a single ``Error:`` line on stderr when
something goes wrong.
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import NoReturn, Optional, Sequence

from gitea_installer.config import defaults
from gitea_installer.errors import InstallerError, PrerequisiteError
from gitea_installer.host import Host, LocalHost
from gitea_installer.installer import InstallResult, provision
from gitea_installer.logging_utils import setup_logging
from gitea_installer.models import InstallationRequest, UninstallRequest, resolve_request
from gitea_installer.ssh_utils import SSHHost, parse_target
from gitea_installer.uninstaller import decommission

BLUE = "\033[34m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
RESET = "\033[0m"

EXIT_OK = 0
EXIT_FAILURE = 1


def _colorize(message: str, color: str) -> str:
    return f"{color}{message}{RESET}"


def _fail(message: str) -> int:
    print(_colorize(f"Error: {message}", RED), file=sys.stderr)
    return EXIT_FAILURE


class _ArgumentParser(argparse.ArgumentParser):
    """argparse reports usage errors with exit status 2; the installer uses 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"Error: {message}\n")


def _add_target_options(parser: argparse.ArgumentParser) -> None:
    remote = parser.add_argument_group("remote target")
    remote.add_argument("--target", metavar="USER@HOST", help="provision a remote machine over SSH")
    remote.add_argument("--key", metavar="PATH", help="private key for --target")
    remote.add_argument("--target-port", type=int, default=22, metavar="PORT", help="SSH port of --target (default: 22)")
    parser.add_argument("--log-dir", metavar="DIR", help="also write a log file into DIR")
    parser.add_argument("-y", dest="assume_yes", action="store_true", help="do not wait before starting")


def build_install_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="gitea-install",
        description="Install Gitea with PostgreSQL behind an HTTPS nginx reverse proxy.",
    )
    parser.add_argument("-d", dest="domain", metavar="DOMAIN", help="domain name for Gitea (required)")
    parser.add_argument("-p", dest="password", metavar="PASSWORD", help="database password (default: auto-generated)")
    parser.add_argument("-e", dest="email", metavar="EMAIL", help="email for Let's Encrypt (required with -P)")
    parser.add_argument("-P", dest="production", action="store_true", help="production mode with Let's Encrypt certificates")
    parser.add_argument("-i", dest="install_dir", default=defaults.DEFAULT_INSTALL_DIR, metavar="INSTALL_DIR",
                        help=f"installation directory (default: {defaults.DEFAULT_INSTALL_DIR})")
    parser.add_argument("-s", dest="ssh_port", default=defaults.DEFAULT_SSH_PORT, metavar="SSH_PORT",
                        help=f"host SSH port for Git operations (default: {defaults.DEFAULT_SSH_PORT})")
    _add_target_options(parser)
    return parser


def build_uninstall_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="gitea-uninstall",
        description="Stop and remove a Gitea installation.",
    )
    parser.add_argument("-i", dest="install_dir", default=defaults.DEFAULT_INSTALL_DIR, metavar="INSTALL_DIR",
                        help=f"installation directory (default: {defaults.DEFAULT_INSTALL_DIR})")
    parser.add_argument("-r", dest="remove_volumes", action="store_true",
                        help="also delete the data volumes (irreversible)")
    parser.add_argument("-d", dest="domain", metavar="DOMAIN", help="remove hosts and crontab entries for DOMAIN")
    parser.add_argument("-x", dest="remove_install_dir", action="store_true",
                        help="delete the installation directory")
    _add_target_options(parser)
    return parser


def open_host(args: argparse.Namespace) -> Host:
    """Return the host the workflow runs against; local runs must be root."""

    if args.target:
        username, hostname = parse_target(args.target)
        host: Host = SSHHost(hostname, username, port=args.target_port, key_path=args.key)
    else:
        host = LocalHost()
    if not host.is_root():
        host.close()
        raise PrerequisiteError("This installer must be run as root (use sudo).")
    return host


def print_plan(request: InstallationRequest) -> None:
    print(_colorize("Gitea Installation Plan:", BLUE))
    print("========================")
    print(f"Domain:            {request.domain}")
    if request.password_generated:
        print(f"Database Password: {request.password} (auto-generated)")
    else:
        print("Database Password: (as provided)")
    print(f"Installation Dir:  {request.install_dir}")
    print(f"SSH Port:          {request.ssh_port}")
    if request.production:
        print("Mode:              Production (Let's Encrypt)")
        print(f"Email for SSL:     {request.email}")
    else:
        print("Mode:              Development (Self-signed certificates)")
    print()


def wait_before_start(seconds: int = defaults.START_DELAY_SECONDS) -> None:
    print(f"The run will begin in {seconds} seconds. Press Ctrl+C to cancel.")
    time.sleep(seconds)


def print_banner(result: InstallResult) -> None:
    request = result.request
    print()
    print(_colorize("===================================================", GREEN))
    print(_colorize("Gitea has been successfully installed!", GREEN))
    print(_colorize("===================================================", GREEN))
    print()
    print(f"Access your Gitea instance at: https://{request.domain}")
    print(f"SSH access port: {request.ssh_port}")
    print()
    if request.password_generated:
        print(f"Database Password: {request.password}")
        print(f"(This password is also saved in the {defaults.SUMMARY_FILENAME} file)")
        print()
    print(f"Installation details saved to: {request.path(defaults.SUMMARY_FILENAME)}")
    print()
    if not request.production:
        print(_colorize("This is a development installation with self-signed certificates.", YELLOW))
        print(_colorize("You'll need to accept the security warning in your browser.", YELLOW))
        print()
    print("When you first access Gitea, you'll be directed to the setup page")
    print("to create an admin account and configure other settings.")


def install_main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_install_parser().parse_args(argv)
    try:
        request = resolve_request(
            domain=args.domain,
            password=args.password,
            email=args.email,
            production=args.production,
            install_dir=args.install_dir,
            ssh_port=args.ssh_port,
        )
    except InstallerError as exc:
        return _fail(str(exc))

    setup_logging(args.log_dir, log_name="gitea-install", secrets=[request.password])
    print_plan(request)
    try:
        if not args.assume_yes:
            wait_before_start()
        host = open_host(args)
    except KeyboardInterrupt:
        return _fail("cancelled by operator")
    except InstallerError as exc:
        return _fail(str(exc))

    with host:
        result = provision(request, host)
    if not result.ok:
        return _fail(f"{result.pipeline.failed_step.name}: {result.pipeline.error}")
    print_banner(result)
    return EXIT_OK


def uninstall_main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_uninstall_parser().parse_args(argv)
    try:
        request = UninstallRequest(
            install_dir=args.install_dir,
            remove_volumes=args.remove_volumes,
            domain=(args.domain or "").strip() or None,
            remove_install_dir=args.remove_install_dir,
        )
    except InstallerError as exc:
        return _fail(str(exc))

    setup_logging(args.log_dir, log_name="gitea-uninstall")
    if request.remove_volumes:
        print(_colorize("WARNING: -r deletes all repositories and database data.", YELLOW))
    try:
        if not args.assume_yes:
            wait_before_start()
        host = open_host(args)
    except KeyboardInterrupt:
        return _fail("cancelled by operator")
    except InstallerError as exc:
        return _fail(str(exc))

    with host:
        result = decommission(request, host)
    if not result.ok:
        return _fail(f"{result.pipeline.failed_step.name}: {result.pipeline.error}")
    for step in result.pipeline.results:
        print(f"- {step.name}: {step.detail}")
    print(_colorize("Gitea has been uninstalled.", GREEN))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Dispatch ``install`` / ``uninstall`` for ``python -m gitea_installer``."""

    argv = list(sys.argv[1:] if argv is None else argv)
    commands = {"install": install_main, "uninstall": uninstall_main}
    if not argv or argv[0] not in commands:
        print("usage: python -m gitea_installer {install,uninstall} [options]", file=sys.stderr)
        return EXIT_OK if argv[:1] in (["-h"], ["--help"]) else EXIT_FAILURE
    return commands[argv[0]](argv[1:])


def run_install() -> None:
    sys.exit(install_main())


def run_uninstall() -> None:
    sys.exit(uninstall_main())
