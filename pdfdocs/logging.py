"""Logging utilities for pdfdocs commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

_LOGGER_NAME = "pdfdocs"
_MASK = "***"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the pdfdocs hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the pdfdocs logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # CLI may be invoked repeatedly in one interpreter (tests, CI wrappers).
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[pdfdocs] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    """Replace every non-empty secret in ``text`` with a mask."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, _MASK)
    return text


class SecretMaskFilter(logging.Filter):
    """Masks credentials in formatted log messages before they are emitted."""

    def __init__(self, secrets: Iterable[Optional[str]]) -> None:
        super().__init__()
        self.secrets = [secret for secret in secrets if secret]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message, self.secrets)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def mask_secrets(*secrets: Optional[str]) -> None:
    """Attach a :class:`SecretMaskFilter` to every pdfdocs handler."""
    values = [secret for secret in secrets if secret]
    if not values:
        return
    for handler in logging.getLogger(_LOGGER_NAME).handlers:
        handler.addFilter(SecretMaskFilter(values))


__all__ = ["SecretMaskFilter", "configure_logging", "get_logger", "mask_secrets", "redact"]
