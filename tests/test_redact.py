"""日志脱敏测试。Tests for secret redaction in logs."""

from __future__ import annotations

import io
import logging

from gitea_installer.logging_utils import get_logger, register_secrets, setup_logging
from gitea_installer.redact import REDACTED, SecretRedactingFilter, redact_text
from gitea_installer.templates import render_compose


def test_redacts_known_secret():
    text = "docker run -e TOKEN=abc SecurePassword123"
    assert redact_text(text, ["SecurePassword123"]) == f"docker run -e TOKEN=abc {REDACTED}"


def test_redacts_password_assignments():
    text = "GITEA__database__PASSWD=hunter2 POSTGRES_PASSWORD=hunter2"
    result = redact_text(text)
    assert "hunter2" not in result
    assert result.count(REDACTED) == 2


def test_leaves_plain_text():
    assert redact_text("Starting services", ["secret"]) == "Starting services"


def test_filter_masks_formatted_arguments():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SecretRedactingFilter(["s3cr3tValue"]))
    logger = logging.getLogger("gitea_installer.tests.redact")
    logger.addHandler(handler)
    logger.propagate = False
    try:
        logger.warning("password is %s", "s3cr3tValue")
    finally:
        logger.removeHandler(handler)
    assert stream.getvalue().strip() == f"password is {REDACTED}"


def test_register_secrets_extends_existing_filter():
    logger = logging.getLogger("gitea_installer.tests.register")
    handler = logging.StreamHandler(io.StringIO())
    logger.addHandler(handler)
    try:
        register_secrets(logger, ["first"])
        register_secrets(logger, ["second", ""])
        filters = [f for f in handler.filters if isinstance(f, SecretRedactingFilter)]
        assert len(filters) == 1
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "first second", None, None)
        filters[0].filter(record)
        assert record.getMessage() == f"{REDACTED} {REDACTED}"
    finally:
        logger.removeHandler(handler)


def test_setup_logging_writes_redacted_file(temp_dir):
    logger = setup_logging(temp_dir, log_name="install", secrets=["TopSecret99"])
    try:
        get_logger("tests").info("db password TopSecret99")
        for handler in logger.handlers:
            handler.flush()
        content = (temp_dir / "install.log").read_text(encoding="utf-8")
        assert "TopSecret99" not in content
        assert REDACTED in content
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_get_logger_namespace():
    assert get_logger("gitea_installer.installer").name == "gitea_installer.installer"
    assert get_logger("tests").name == "gitea_installer.tests"
    assert get_logger().name == "gitea_installer"


def test_redacts_rendered_compose_environment(dev_context):
    text = redact_text(render_compose(dev_context))
    assert "SecurePassword123" not in text
    assert f"GITEA__database__PASSWD={REDACTED}" in text
    assert f"POSTGRES_PASSWORD={REDACTED}" in text
    assert "POSTGRES_USER=gitea" in text
