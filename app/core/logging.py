# app/core/logging.py
import logging
import sys
from typing import Iterable
import colorlog

# Per-chunk debug output from these drowns the pipeline logs
NOISY_LOGGERS = ("pymongo", "httpx", "httpcore", "openai")

def configure_logging(level=logging.INFO, *, quiet: Iterable[str] = NOISY_LOGGERS):
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
