"""Logging configuration for tabnote."""

import sys

from loguru import logger

# Debug output names the emitting module, since store flushes, polls and
# session changes interleave on one event loop.
_DEBUG_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> {level: <7} <cyan>{name}</cyan> {message}"
_DEFAULT_FORMAT = "{level.icon} {message}"


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Send logs to stderr so command output on stdout stays clean.

    ``quiet`` keeps only warnings and errors; ``verbose`` wins if both are set.
    """
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG", format=_DEBUG_FORMAT)
    else:
        logger.add(sys.stderr, level="WARNING" if quiet else "INFO", format=_DEFAULT_FORMAT)
