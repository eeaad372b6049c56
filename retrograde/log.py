"""
Logging bootstrap.

Call ``configure_logging()`` once at application startup; modules obtain
their loggers with ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import sys

from retrograde.config import settings

_CONFIGURED = False


def configure_logging(
  level: str | None = None,
  fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
  datefmt: str = "%Y-%m-%d %H:%M:%S",
) -> None:
  global _CONFIGURED
  if _CONFIGURED:
    return

  resolved = logging.getLevelName((level or settings.log_level or "INFO").upper())
  # unknown names come back as "Level X"
  if not isinstance(resolved, int):
    resolved = logging.INFO

  handler = logging.StreamHandler(sys.stdout)
  handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))

  root = logging.getLogger()
  root.setLevel(resolved)
  # uvicorn may already have installed its own handlers
  if not root.handlers:
    root.addHandler(handler)

  logging.getLogger("httpx").setLevel(logging.WARNING)
  logging.getLogger("httpcore").setLevel(logging.WARNING)
  logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

  _CONFIGURED = True
