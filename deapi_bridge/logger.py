import logging
import os
from typing import Optional

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

FMT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
DATETIMEFMT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    global _configured

    root = logging.getLogger()
    root.setLevel((level or _LOG_LEVEL).upper())

    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(fmt=FMT, datefmt=DATETIMEFMT))
            root.addHandler(handler)

        logging.getLogger("werkzeug").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
