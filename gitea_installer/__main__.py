"""Module entry point so the installer can be executed with ``python -m gitea_installer``."""

from __future__ import annotations

import sys

from .cli import main


def run() -> None:
    """Dispatch to :func:`gitea_installer.cli.main`."""

    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - module execution hook
    run()
