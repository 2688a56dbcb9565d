import sys

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)


def setup_logger(level: str = "INFO") -> None:
    """Route all log output to stderr.

    stdout is reserved for the MCP stdio protocol, so the default loguru sink
    is replaced rather than extended.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=DEFAULT_FORMAT,
        diagnose=False,  # hide variable values in log backtrace
    )
