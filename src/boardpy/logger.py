# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.
"""
The private loguru logger of boardpy.

It has its own core, so handlers added or removed by the host application
never affect it and the other way around.
"""

import sys as _sys
from typing import Literal

from loguru._logger import Core as _Core
from loguru._logger import Logger as _Logger

Severity = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

SEVERITIES: tuple[str, ...] = Severity.__args__

DEFAULT_LEVEL = "WARNING"

logger = _Logger(
    core=_Core(),
    exception=None,
    depth=0,
    record=False,
    lazy=False,
    colors=False,
    raw=False,
    capture=True,
    patchers=[],
    extra={},
)
logger.add(_sys.stderr, level=DEFAULT_LEVEL)


def log_exception(exception: Exception, severity: Severity = "ERROR") -> None:
    """
    Log an exception as `<ClassName>: <message>`.

    A chained cause is appended, so wrapped httpx errors remain visible.
    Unknown severities fall back to `ERROR`.
    """
    level = severity.upper()
    if level not in SEVERITIES:
        logger.error(f"Invalid severity level '{severity}' provided. Defaulting to 'ERROR'")
        level = "ERROR"

    message = f"{exception.__class__.__name__}: {exception}"
    cause = exception.__cause__
    if cause is not None:
        message += f" (caused by {cause.__class__.__name__}: {cause})"

    logger.opt(depth=1).log(level, message)
