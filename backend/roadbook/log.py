import logging
import sys

from roadbook.config import settings


class HealthCheckFilter(logging.Filter):
    """Keep /health probes out of the uvicorn access log."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "/health" not in record.getMessage()


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """
    Configure root logging to stdout, plus a file when log_file is set.

    Falls back to stdout only if the log file can't be opened.
    """
    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            file_error = e

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())

    logger = logging.getLogger("roadbook")
    if file_error is not None:
        logger.warning("Could not open log file %s, logging to stdout only: %s", log_file, file_error)
    return logger
