"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent without forcing every
    error to carry every field.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    limit: int
    question_id: str
    backend: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input is missing or empty."""


class AuthenticationAppError(AppError):
    """Raised when the login stub rejects credentials."""


class NotFoundError(AppError):
    """Raised when the target question does not exist."""


@dataclass
class RateLimitedError(AppError):
    """Raised when a caller exceeds its sliding-window budget.

    Attributes:
        retry_after: Seconds until the oldest marker leaves the window.
        limit: Budget of the window that was exceeded.
        remaining: Remaining budget (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest marker expires.
    """

    retry_after: int = 1
    limit: int = 0
    remaining: int = 0
    reset_at: int = 0


class UpstreamUnavailableError(AppError):
    """Raised when the backing store cannot be reached or fails."""


class StreamDeliveryError(AppError):
    """Raised when a frame cannot be handed to a stream connection.

    Never surfaces over HTTP: stream sessions log and swallow it.
    """
