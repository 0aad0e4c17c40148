"""Mask secrets before they reach a log sink.

The summary document written into the installation directory is the only
place the effective password is meant to be stored. Log handlers get a
:class:`SecretRedactingFilter` so command lines and messages that embed the
password are masked on their way to the console or a log file.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

REDACTED = "***REDACTED***"

PASSWORD_ASSIGNMENT_REGEX = re.compile(r"(?i)(?<![A-Za-z0-9])(PASSWD|PASSWORD)=([^\s\"']+)")


def redact_text(text: str, secrets: Iterable[str] = ()) -> str:
    """Replace every known secret and every ``PASSWORD=...`` value in ``text``."""

    result = text
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        result = result.replace(secret, REDACTED)
    return PASSWORD_ASSIGNMENT_REGEX.sub(lambda m: f"{m.group(1)}={REDACTED}", result)


class SecretRedactingFilter(logging.Filter):
    """Logging filter that rewrites records with secrets masked."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self._secrets: set[str] = {s for s in secrets if s}

    def add_secrets(self, secrets: Iterable[str]) -> None:
        self._secrets.update(s for s in secrets if s)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_text(message, self._secrets)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True
