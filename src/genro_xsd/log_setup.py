# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""JSON logging for the command line tool.

The library itself only creates module loggers; handlers are installed by
the application. ``setup_logging`` is what the ``genro-xsd`` command uses.
"""

from __future__ import annotations

import logging
import logging.config

from pythonjsonlogger import jsonlogger


def setup_logging(verbose: bool = False) -> None:
    """Send JSON log records to stderr.

    Args:
        verbose: Log at DEBUG level instead of WARNING.
    """
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {
            "genro_xsd": {
                "handlers": ["console"],
                "level": "DEBUG" if verbose else "WARNING",
                "propagate": False,
            }
        },
    }

    logging.config.dictConfig(logging_config)
