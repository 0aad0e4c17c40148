"""Idempotent line edits for host-wide state.

The hosts file and the crontab are shared with every other program on the
machine. Both are modelled as a :class:`LineStore` and edited only through
:func:`ensure_line` and :func:`remove_lines`, which provisioning and
decommission use identically.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from typing import Callable, List

from gitea_installer.config.defaults import HOSTS_FILE
from gitea_installer.host import Host
from gitea_installer.logging_utils import get_logger

LOGGER = get_logger(__name__)

LinePredicate = Callable[[str], bool]


class LineStore(metaclass=ABCMeta):

    @abstractmethod
    def read_lines(self) -> List[str]:
        pass

    @abstractmethod
    def write_lines(self, lines: List[str]) -> None:
        pass


class FileLineStore(LineStore):
    """A plain text file such as ``/etc/hosts``."""

    def __init__(self, host: Host, path: str = HOSTS_FILE):
        self._host = host
        self.path = path

    def __repr__(self):
        return f"{FileLineStore.__name__}({self.path!r})"

    def read_lines(self):
        content = self._host.read_text(self.path)
        return content.splitlines() if content else []

    def write_lines(self, lines):
        self._host.write_text(self.path, "".join(f"{line}\n" for line in lines))


class CrontabLineStore(LineStore):
    """The invoking user's crontab, edited through ``crontab -l`` / ``crontab -``."""

    def __init__(self, host: Host):
        self._host = host

    def __repr__(self):
        return f"{CrontabLineStore.__name__}()"

    def read_lines(self):
        result = self._host.run(["crontab", "-l"])
        if result.returncode != 0:
            # "no crontab for <user>" is reported as a failure.
            return []
        return result.stdout.splitlines()

    def write_lines(self, lines):
        content = "".join(f"{line}\n" for line in lines)
        self._host.run_checked(["crontab", "-"], "Install crontab", input=content)


def ensure_line(store: LineStore, predicate: LinePredicate, line: str) -> bool:
    """Append ``line`` unless an existing line satisfies ``predicate``.

    Returns ``True`` when the store was modified.
    """

    lines = store.read_lines()
    if any(predicate(existing) for existing in lines):
        LOGGER.info("%r already has a matching entry; leaving it unchanged", store)
        return False
    store.write_lines([*lines, line])
    LOGGER.info("Appended entry to %r", store)
    return True


def remove_lines(store: LineStore, predicate: LinePredicate) -> int:
    """Drop every line satisfying ``predicate``; return how many were removed."""

    lines = store.read_lines()
    kept = [line for line in lines if not predicate(line)]
    removed = len(lines) - len(kept)
    if removed:
        store.write_lines(kept)
        LOGGER.info("Removed %d entr%s from %r", removed, "y" if removed == 1 else "ies", store)
    else:
        LOGGER.info("No matching entries in %r", store)
    return removed


def mentions(*needles: str) -> LinePredicate:
    """Predicate: the line contains every needle as a substring."""

    return lambda line: all(needle in line for needle in needles)


def maps_hostname(hostname: str) -> LinePredicate:
    """Predicate: a hosts-file line that maps ``hostname`` (comments ignored)."""

    def predicate(line: str) -> bool:
        fields = line.split("#", 1)[0].split()
        return hostname in fields[1:]

    return predicate
