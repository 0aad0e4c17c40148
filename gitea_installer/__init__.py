"""Provision a self-hosted Gitea behind an HTTPS nginx proxy, and tear it down again.

Two workflows share one set of tool wrappers:

1. :func:`gitea_installer.installer.provision` renders the compose manifest and
   proxy configuration, obtains TLS material, starts the containers and writes
   the operator summary.
2. :func:`gitea_installer.uninstaller.decommission` stops the containers and
   removes what provisioning left on the host.
"""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
