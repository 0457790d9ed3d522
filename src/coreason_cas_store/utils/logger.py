# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cas_store

"""
Loguru logger shared by the whole package.
"""

import contextlib
import os
import sys
from typing import Optional

from loguru import logger

_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {name}:{function} - {message}"

_handler_id: Optional[int] = None


def configure_logging(level: str = "INFO") -> None:
    """
    (Re)installs the package's stderr sink at the given level.

    Sinks added by other code (tests, host applications) are left alone.
    """
    global _handler_id
    if _handler_id is not None:
        logger.remove(_handler_id)
    _handler_id = logger.add(sys.stderr, level=level.upper(), format=_FORMAT)


def redact(value: Optional[str], keep: int = 6) -> str:
    """Shortens a ticket or IOU so log lines never carry the full secret."""
    if not value:
        return "<none>"
    if len(value) <= keep:
        return "***"
    return f"{value[:keep]}***"


def _install_package_sink() -> None:
    """
    Replaces loguru's default stderr handler (id 0) with the package sink.

    Sinks the host application installed are kept.
    """
    with contextlib.suppress(ValueError):
        # already removed by the host application
        logger.remove(0)
    configure_logging(os.getenv("CAS_STORE_LOG_LEVEL", "INFO"))


_install_package_sink()

__all__ = ["logger", "configure_logging", "redact"]
