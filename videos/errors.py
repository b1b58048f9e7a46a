"""Failure taxonomy and classification for video generation jobs."""
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple

import httpx
from google.genai import errors as genai_errors

from config import Config


class ErrorKind(str, Enum):
    """Stable failure kinds surfaced to callers of the generator."""
    PRECONDITION_FAILED = "precondition_failed"
    TRANSIENT_SERVICE_ERROR = "transient_service_error"
    CONTENT_REJECTED = "content_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    AUTH_FAILURE = "auth_failure"
    FETCH_FAILED = "fetch_failed"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"


class GenerationError(Exception):
    """A classified failure of one generation attempt."""

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT_SERVICE_ERROR

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, message={self.message!r}, status_code={self.status_code!r})"


# gRPC PERMISSION_DENIED / UNAUTHENTICATED as reported on a long-running operation
AUTH_OPERATION_CODES = frozenset({7, 16})
AUTH_HTTP_STATUSES = frozenset({401, 403})
AUTH_MARKERS = (
    "requested entity was not found",
    "api_key_invalid",
    "api key not valid",
    "permission_denied",
    "unauthenticated",
)


class TransientErrorPolicy:
    """
    Which provider failures are worth resubmitting the whole job for.

    The provider's error taxonomy is external, so codes, statuses and message
    markers all come from configuration rather than being fixed here.
    """

    def __init__(
        self,
        operation_codes: Iterable[int] = (13,),
        http_statuses: Iterable[int] = (500, 503),
        markers: Iterable[str] = ("internal server error", "internal error"),
    ):
        self.operation_codes: FrozenSet[int] = frozenset(int(c) for c in operation_codes)
        self.http_statuses: FrozenSet[int] = frozenset(int(s) for s in http_statuses)
        self.markers: Tuple[str, ...] = tuple(m.lower() for m in markers if m)

    @classmethod
    def from_config(cls) -> "TransientErrorPolicy":
        return cls(
            operation_codes=[int(c) for c in Config.VIDEO_TRANSIENT_ERROR_CODES],
            http_statuses=[int(s) for s in Config.VIDEO_TRANSIENT_HTTP_STATUSES],
            markers=Config.VIDEO_TRANSIENT_ERROR_MARKERS,
        )

    def matches_message(self, message: Optional[str]) -> bool:
        lowered = (message or "").lower()
        return any(marker in lowered for marker in self.markers)


def _is_auth_message(message: Optional[str]) -> bool:
    lowered = (message or "").lower()
    return any(marker in lowered for marker in AUTH_MARKERS)


def _error_field(error: Any, name: str) -> Any:
    if isinstance(error, dict):
        return error.get(name)
    return getattr(error, name, None)


def classify_operation_error(error: Any, policy: TransientErrorPolicy) -> GenerationError:
    """
    Classify the error carried on a finished remote operation.

    Accepts an OperationError model or the provider's raw error dict.
    """
    code = _error_field(error, "code")
    message = _error_field(error, "message") or "Unknown error from the video generation service"

    if code in AUTH_OPERATION_CODES or _is_auth_message(message):
        return GenerationError(ErrorKind.AUTH_FAILURE, message, code)
    if code in policy.operation_codes or policy.matches_message(message):
        return GenerationError(ErrorKind.TRANSIENT_SERVICE_ERROR, message, code)
    return GenerationError(ErrorKind.TRANSPORT_ERROR, message, code)


def classify_exception(exc: BaseException, policy: TransientErrorPolicy) -> GenerationError:
    """Classify an exception raised while submitting, polling or fetching."""
    if isinstance(exc, GenerationError):
        return exc

    if isinstance(exc, genai_errors.APIError):
        status_code = exc.code
        message = exc.message or str(exc)
        if status_code in AUTH_HTTP_STATUSES or _is_auth_message(message) or _is_auth_message(exc.status):
            return GenerationError(ErrorKind.AUTH_FAILURE, message, status_code)
        if status_code in policy.http_statuses or policy.matches_message(message):
            return GenerationError(ErrorKind.TRANSIENT_SERVICE_ERROR, message, status_code)
        return GenerationError(ErrorKind.TRANSPORT_ERROR, message, status_code)

    status_code = None
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code

    message = str(exc) or exc.__class__.__name__
    if status_code in AUTH_HTTP_STATUSES or _is_auth_message(message):
        return GenerationError(ErrorKind.AUTH_FAILURE, message, status_code)
    if status_code in policy.http_statuses or policy.matches_message(message):
        return GenerationError(ErrorKind.TRANSIENT_SERVICE_ERROR, message, status_code)
    return GenerationError(ErrorKind.TRANSPORT_ERROR, message, status_code)
