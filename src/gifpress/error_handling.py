"""Error types and standardized error handling utilities.

Every failure inside the optimization pipeline is expressed with one of the
exceptions below. Only :class:`AllStrategiesExhausted` and
:class:`ResourceError` are expected to reach callers of the pipeline; the
rest are caught at stage boundaries and turned into fallback transitions.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import Any


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class GifPressError(Exception):
    """Base exception class for all gifpress errors."""

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class BinaryUnavailable(GifPressError):
    """Raised when the optimizer binary cannot be found or does not respond."""


class ProcessLaunchError(GifPressError):
    """Raised when an external binary cannot be located or executed."""


class ProcessExecutionFailed(GifPressError):
    """An external process exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause=cause, context=context)
        self.exit_code = exit_code


class ProcessTimeoutError(ProcessExecutionFailed):
    """An external process exceeded the configured timeout and was killed."""


class FrameExtractionIncomplete(GifPressError):
    """Fewer frames were extracted than the optimizer reported."""

    def __init__(self, expected: int, found: int):
        super().__init__(f"Expected {expected} frames, extracted {found}")
        self.expected = expected
        self.found = found


class EngineError(GifPressError):
    """Raised when a raster engine cannot load, quantize or write an image."""


class ResourceError(GifPressError):
    """Scratch space (temp file or directory) could not be created."""


class AllStrategiesExhausted(GifPressError):
    """Even the verbatim copy of the source could not be written."""


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[GifPressError] = GifPressError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> GifPressError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of GifPressError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        GifPressError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"🚨 {operation.capitalize()} failed: {error}"
    context_str = ", ".join(f"{k}={v}" for k, v in error_context.items())
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[GifPressError] = GifPressError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Any:
    """Context manager for standardized error handling.

    Usage:
        with error_context("create temp directory", ResourceError, context={"root": root}):
            os.mkdir(path)

    gifpress errors pass through unchanged; anything else is wrapped in
    *error_type*.
    """
    try:
        yield
    except GifPressError:
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)


def log_warning_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log a warning with standardized context formatting."""
    if logger is None:
        logger = logging.getLogger(__name__)

    warning_msg = f"⚠️  {message}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        warning_msg += f" (context: {context_str})"

    logger.warning(warning_msg)


def log_info_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log an info message with standardized context formatting."""
    if logger is None:
        logger = logging.getLogger(__name__)

    info_msg = f"ℹ️  {message}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        info_msg += f" (context: {context_str})"

    logger.info(info_msg)
