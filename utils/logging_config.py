"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; this only decides where
records go and how they are rendered.
"""

import logging
import sys

from pythonjsonlogger import jsonlogger

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "uvicorn.access")


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name ("DEBUG", "INFO", ...)
        fmt: "json" for structured output, anything else for plain text
    """
    root_logger = logging.getLogger()
    resolved = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(resolved)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)

    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
