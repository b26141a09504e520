import logging
from logging import config as logging_config

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Structured events are JSON lines; they get their own handler so nothing is
# prepended to the JSON
EVENTS_LOGGER = "catviewer.events"

# Chatty AWS and HTTP libraries only log warnings and above
NOISY_LOGGERS = ("botocore", "boto3", "aioboto3", "aiobotocore", "urllib3", "s3transfer")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name with ANSI codes.

    Colors can be turned off (``use_colors=False``) for logs that are not read on
    a terminal; the record itself is never modified.
    """

    COLOR_MAP = {
        "DEBUG": "\x1b[36m",
        "INFO": "\x1b[32m",
        "WARNING": "\x1b[33m",
        "ERROR": "\x1b[31m",
        "CRITICAL": "\x1b[41m",
    }
    RESET = "\x1b[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLOR_MAP.get(record.levelname) if self.use_colors else None
        if not color:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def build_logging_config(level: str = "INFO", use_colors: bool = True) -> dict:
    """dictConfig payload: app and uvicorn logs to stdout, events as bare JSON lines."""
    console = {"()": "catviewer.logging_config.ColoredFormatter", "fmt": LOG_FORMAT, "datefmt": DATE_FORMAT, "use_colors": use_colors}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": console,
            "events": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "console", "stream": "ext://sys.stdout"},
            "events": {"class": "logging.StreamHandler", "formatter": "events", "stream": "ext://sys.stdout"},
        },
        "loggers": {
            "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
            EVENTS_LOGGER: {"handlers": ["events"], "level": level, "propagate": False},
            **{name: {"level": "WARNING"} for name in NOISY_LOGGERS},
        },
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(level: str = "INFO", use_colors: bool = True) -> None:
    """Configure process-wide logging. Called once from the app lifespan."""
    logging_config.dictConfig(build_logging_config(level.upper(), use_colors))


__all__ = ["configure_logging", "build_logging_config", "ColoredFormatter"]
