"""Error taxonomy shared by the API, the identity providers and the client.

Every error carries the HTTP status it maps to and a message that is safe to
show to an end user. The API renders them as ``{"error": message}``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class MetricFlowError(Exception):
    """Base class for errors with a stable HTTP status."""

    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message}


class Unauthorized(MetricFlowError):
    """Missing, malformed, expired or revoked bearer token."""

    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(MetricFlowError):
    status_code = 401
    default_message = "Invalid email or password"


class NotFound(MetricFlowError):
    """Record absent, or present but owned by someone else."""

    status_code = 404
    default_message = "Metric not found"


class ValidationError(MetricFlowError):
    status_code = 400
    default_message = "Invalid request"


class ProviderError(MetricFlowError):
    """Opaque failure reported by the identity provider or the store."""

    status_code = 400
    default_message = "Identity provider request failed"


class DuplicateAccount(ProviderError):
    default_message = "This email is already registered. Please use a different email or try logging in."


class PostCreateSignInError(ProviderError):
    """The account exists but the automatic sign-in right after creation failed."""

    default_message = "Account created but sign-in failed"


class UnexpectedError(MetricFlowError):
    status_code = 500
    default_message = "Internal server error"


@contextmanager
def failure_boundary(message: str) -> Iterator[None]:
    """Convert anything that is not already a ``MetricFlowError`` into an ``UnexpectedError``.

    ``message`` is what the caller sees; the original exception is logged with
    its traceback and chained.
    """

    try:
        yield
    except MetricFlowError:
        raise
    except Exception as exc:
        logger.exception("%s: %s", message, exc)
        raise UnexpectedError(message) from exc


__all__ = [
    "DuplicateAccount",
    "InvalidCredentials",
    "MetricFlowError",
    "NotFound",
    "PostCreateSignInError",
    "ProviderError",
    "Unauthorized",
    "UnexpectedError",
    "ValidationError",
    "failure_boundary",
]
