"""
Rich-based logging system
"""
import logging
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_traceback


# Global console instances (resolve sys.stdout/sys.stderr lazily)
_stdout_console = Console()
_stderr_console = Console(stderr=True)

# Locals stay hidden: transfer frames hold part buffers and credentials
install_traceback(show_locals=False, width=120)

# Third-party loggers that flood DEBUG output with wire details
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SecretFilter(logging.Filter):
    """Masks known secret values in log messages"""

    MASK = "***"

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        for secret in self._secrets:
            message = message.replace(secret, self.MASK)
        record.msg = message
        record.args = None
        return True


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
    secrets: Iterable[str] = (),
) -> None:
    """
    Setup Rich logging system.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        rich_tracebacks: Enable rich tracebacks
        secrets: Values masked in every handler's output (e.g. the secret key)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    secret_filter = SecretFilter(secrets)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Logs go to stderr so stdout carries only progress lines
    rich_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=True,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_level=True,
    )
    rich_handler.setLevel(log_level)
    rich_handler.addFilter(secret_filter)
    root_logger.addHandler(rich_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.addFilter(secret_filter)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_stdout_console() -> Console:
    """Console for progress and result lines"""
    return _stdout_console


def get_stderr_console() -> Console:
    """Console for errors and logs"""
    return _stderr_console
