"""Logging setup for auditprep runs.

Two output styles share one stderr handler, so ``--format json`` output on
stdout stays machine-readable:

  - one JSON object per record in staging/production
  - coloured single lines in development

Records emitted while a contract is being processed carry ``chain`` and
``address`` (see ``contract_log_context``); probes add ``detection_method``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

CONTEXT_FIELDS = ("chain", "address", "contract_type", "detection_method")
NOISY_LOGGERS = ("httpcore", "httpx", "web3", "urllib3", "asyncio")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if getattr(record, key, None)}


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record))

        if record.exc_info and record.exc_info[1]:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured, compact lines for a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[2m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        name = record.name.removeprefix("auditprep.")
        line = f"{color}{ts} {record.levelname[0]}{self.RESET} {name}: {record.getMessage()}"

        address = getattr(record, "address", None)
        if address:
            line = f"{line}  [{address[:10]}]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(env: str = "development", log_level: str = "INFO") -> None:
    """Install the auditprep handler on the root logger.

    Args:
        env: development, staging or production; the latter two log JSON
        log_level: minimum level name, unknown names fall back to INFO
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


class ContractLogFilter(logging.Filter):
    """Stamps the contract being processed onto records that lack it."""

    def __init__(self, chain: str = "", address: str = "") -> None:
        super().__init__()
        self.chain = chain
        self.address = address

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "chain", None):
            record.chain = self.chain  # type: ignore[attr-defined]
        if not getattr(record, "address", None):
            record.address = self.address  # type: ignore[attr-defined]
        return True


@contextmanager
def contract_log_context(chain: str, address: str) -> Iterator[ContractLogFilter]:
    """Attach a ContractLogFilter to every root handler for the block."""
    log_filter = ContractLogFilter(chain=chain, address=address)
    handlers = list(logging.getLogger().handlers)
    for handler in handlers:
        handler.addFilter(log_filter)
    try:
        yield log_filter
    finally:
        for handler in handlers:
            handler.removeFilter(log_filter)
