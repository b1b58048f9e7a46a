"""
User-friendly error messages and status codes.

Maps each video generation failure kind to a message that is safe to show
to end users and to the HTTP status the API responds with.
"""
from typing import Tuple, Optional

from videos.errors import ErrorKind


ERROR_MESSAGES = {
    ErrorKind.PRECONDITION_FAILED: "The request is missing something it needs. An input video is required to extend a video.",
    ErrorKind.TRANSIENT_SERVICE_ERROR: "The video generation service is temporarily busy or encountered an internal error. Please try again in a moment.",
    ErrorKind.CONTENT_REJECTED: "Video generation failed. The content was likely blocked by safety filters. Please try adjusting your prompt or reference images.",
    ErrorKind.MALFORMED_RESPONSE: "The video generation service returned an incomplete result. Please try again.",
    ErrorKind.AUTH_FAILURE: "Your API key is invalid or lacks permissions. Please select a valid, billing-enabled API key.",
    ErrorKind.FETCH_FAILED: "The video was generated but could not be downloaded. Please try again.",
    ErrorKind.TRANSPORT_ERROR: "We're having trouble connecting to the video generation service. Please try again in a few moments.",
    ErrorKind.CANCELLED: "Video generation was cancelled.",
}

UNKNOWN_ERROR_MESSAGE = "Something unexpected happened. Please try again."


ERROR_STATUS_CODES = {
    ErrorKind.PRECONDITION_FAILED: 400,
    ErrorKind.TRANSIENT_SERVICE_ERROR: 503,
    ErrorKind.CONTENT_REJECTED: 422,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.AUTH_FAILURE: 401,
    ErrorKind.FETCH_FAILED: 502,
    ErrorKind.TRANSPORT_ERROR: 502,
    ErrorKind.CANCELLED: 409,
}


def get_error_response(
    kind: Optional[ErrorKind],
    custom_message: Optional[str] = None,
) -> Tuple[str, int]:
    """
    Get user-friendly error message and HTTP status code.

    Args:
        kind: The failure kind (None for unexpected errors)
        custom_message: Optional text appended to the standard message

    Returns:
        Tuple of (error_message, status_code)
    """
    message = ERROR_MESSAGES.get(kind, UNKNOWN_ERROR_MESSAGE)
    status_code = ERROR_STATUS_CODES.get(kind, 500)

    if custom_message:
        message = f"{message} {custom_message}"

    return message, status_code


def format_error_detail(kind: ErrorKind, detail: Optional[str] = None) -> str:
    """
    Format error detail for API response.

    Content rejections already carry a complete, user-facing message, so the
    provider detail replaces the standard text instead of being appended.
    """
    base_message = ERROR_MESSAGES.get(kind, UNKNOWN_ERROR_MESSAGE)
    if not detail:
        return base_message
    if kind == ErrorKind.CONTENT_REJECTED:
        return detail
    return f"{base_message} ({detail})"
