# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.
"""
Public helpers for configuring the boardpy logger.

Examples
--------
```python
import boardpy
boardpy.set_logging_level("DEBUG")
boardpy.log_to_file("TRACE", "boardpy.log")
```
"""

import sys as _sys
from pathlib import Path

from boardpy.logger import logger


def set_logging_level(level: str, sink=_sys.stderr) -> None:
    """
    Replace all handlers with a single one writing to `sink` from `level` up.
    """
    logger.remove()
    logger.add(sink, level=level)


def log_to_file(level: str, filename: str | Path) -> None:
    """
    Replace all handlers with one appending to `filename`.

    The file is opened and closed by loguru.
    """
    logger.remove()
    logger.add(filename, level=level, mode="a", encoding="utf-8")


__all__ = ["set_logging_level", "log_to_file"]
