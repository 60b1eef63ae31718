"""Translation of booking errors into HTTP responses."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status

from ..errors import (
    BookingError,
    CollaboratorError,
    CollaboratorTimeout,
    InvariantViolation,
    SessionAbandoned,
    SessionNotFound,
    SubmissionInProgress,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _status_for(exc: BookingError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (SessionNotFound, SessionAbandoned)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SubmissionInProgress):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, CollaboratorTimeout) or (
        isinstance(exc, CollaboratorError) and exc.reason == "timeout"
    ):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, CollaboratorError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: BookingError) -> HTTPException:
    """Only the fixed user-facing message leaves the service."""

    if isinstance(exc, InvariantViolation):
        logger.error(f"Booking invariant violated: {exc.detail}")
    else:
        logger.info(f"{type(exc).__name__}: {exc.detail}")
    return HTTPException(
        status_code=_status_for(exc),
        detail={
            "code": type(exc).__name__,
            "message": exc.user_message,
            "retryable": exc.retryable,
        },
    )


def internal_error(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Error while trying to {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "code": "InternalError",
            "message": BookingError.user_message,
            "retryable": False,
        },
    )


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Convert booking errors raised inside the block into HTTP errors."""
    try:
        yield
    except HTTPException:
        raise
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:
        raise internal_error(action, exc) from exc
