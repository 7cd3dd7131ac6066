# -*- coding: utf-8 -*-
"""Error taxonomy for AI requests.

Every failure surfaced by :class:`~smartflow.ai.client.AIClient` is an
:class:`AIError` carrying a code, a retryable flag and enough detail
(status code, endpoint, provider error body) for a UI to render a hint.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence

from ..providers.models import VALID_REASONING_EFFORTS, ApiFormat


class AIErrorCode(str, Enum):
    NO_PROVIDER_CONFIGURED = "NO_PROVIDER_CONFIGURED"
    NO_MODEL_CONFIGURED = "NO_MODEL_CONFIGURED"
    INVALID_API_KEY = "INVALID_API_KEY"
    INVALID_ENDPOINT = "INVALID_ENDPOINT"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    UNSUPPORTED_API_FORMAT = "UNSUPPORTED_API_FORMAT"
    INVALID_REASONING_EFFORT = "INVALID_REASONING_EFFORT"
    RESPONSES_API_ERROR = "RESPONSES_API_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    REQUEST_FAILED = "REQUEST_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"


_HINTS = {
    AIErrorCode.NO_PROVIDER_CONFIGURED: (
        "Add a provider and bind it to this feature in settings."
    ),
    AIErrorCode.NO_MODEL_CONFIGURED: "Add a model to the provider.",
    AIErrorCode.INVALID_API_KEY: "Check your API key.",
    AIErrorCode.INVALID_ENDPOINT: (
        "Check the provider endpoint URL (usually ends with /v1)."
    ),
    AIErrorCode.INVALID_PARAMETER: "Review the model parameters.",
    AIErrorCode.UNSUPPORTED_API_FORMAT: (
        "This endpoint does not support the Responses API; switch the "
        "model to the chat-completions format."
    ),
    AIErrorCode.INVALID_REASONING_EFFORT: (
        "Set reasoning effort to low, medium or high."
    ),
    AIErrorCode.RESPONSES_API_ERROR: (
        "The Responses API rejected the request; check the model name "
        "and parameters or switch to chat-completions."
    ),
    AIErrorCode.RATE_LIMITED: (
        "Rate limited; wait a moment or add another API key for rotation."
    ),
    AIErrorCode.REQUEST_FAILED: "The provider returned an error.",
    AIErrorCode.NETWORK_ERROR: "Check your network connection.",
    AIErrorCode.TIMEOUT: "The request timed out; try again.",
    AIErrorCode.INVALID_RESPONSE: (
        "The provider returned an unexpected response."
    ),
    AIErrorCode.REQUEST_CANCELLED: "The request was cancelled.",
}


class AIError(Exception):
    """Base error for AI requests."""

    def __init__(
        self,
        code: AIErrorCode,
        message: str,
        retryable: bool = False,
        *,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        self.code = code
        self.message = message
        self.retryable = retryable
        self.status_code = status_code
        self.endpoint = endpoint
        self.details = details
        self.cause = cause
        super().__init__(message)

    @property
    def hint(self) -> str:
        return _HINTS.get(self.code, "")

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "endpoint": self.endpoint,
            "hint": self.hint,
        }


class ConfigurationError(AIError):
    """Missing or invalid provider/model setup. Needs user action."""

    def __init__(self, code: AIErrorCode, message: str):
        super().__init__(code, message, retryable=False)


class UnsupportedAPIFormatError(AIError):
    def __init__(
        self,
        requested_format: str = ApiFormat.RESPONSES.value,
        suggested_format: str = ApiFormat.CHAT_COMPLETIONS.value,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ):
        self.requested_format = requested_format
        self.suggested_format = suggested_format
        super().__init__(
            AIErrorCode.UNSUPPORTED_API_FORMAT,
            f"The endpoint does not support the '{requested_format}' API "
            f"format; try '{suggested_format}'",
            retryable=False,
            status_code=status_code,
            **kwargs,
        )


class InvalidReasoningEffortError(AIError):
    def __init__(
        self,
        provided_value: str,
        valid_options: Sequence[str] = VALID_REASONING_EFFORTS,
        **kwargs: Any,
    ):
        self.provided_value = provided_value
        self.valid_options = list(valid_options)
        super().__init__(
            AIErrorCode.INVALID_REASONING_EFFORT,
            f"Invalid reasoning effort '{provided_value}'; expected one of "
            f"{', '.join(self.valid_options)}",
            retryable=False,
            **kwargs,
        )


class ResponsesAPIError(AIError):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: Optional[str] = None,
        original_message: Optional[str] = None,
        **kwargs: Any,
    ):
        self.error_type = error_type
        self.original_message = original_message
        super().__init__(
            AIErrorCode.RESPONSES_API_ERROR,
            message,
            retryable=False,
            status_code=status_code,
            **kwargs,
        )


class HTTPRequestError(AIError):
    """Non-2xx response outside the more specific kinds above."""


class RateLimitError(HTTPRequestError):
    def __init__(self, message: str, **kwargs: Any):
        super().__init__(
            AIErrorCode.RATE_LIMITED,
            message,
            retryable=True,
            status_code=429,
            **kwargs,
        )


class NetworkError(AIError):
    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ):
        super().__init__(
            AIErrorCode.NETWORK_ERROR,
            f"Network error: {message}",
            retryable=True,
            cause=cause,
            **kwargs,
        )


class RequestTimeoutError(AIError):
    def __init__(self, timeout: float, **kwargs: Any):
        self.timeout = timeout
        super().__init__(
            AIErrorCode.TIMEOUT,
            f"Request timed out after {timeout:g}s",
            retryable=True,
            **kwargs,
        )


class InvalidResponseError(AIError):
    """2xx response that matches no known shape or lacks content.

    ``malformed`` is False when the body carried an explicit provider
    error object instead of a result.
    """

    def __init__(
        self,
        message: str,
        raw: Any = None,
        malformed: bool = True,
        **kwargs: Any,
    ):
        self.raw = raw
        self.malformed = malformed
        super().__init__(
            AIErrorCode.INVALID_RESPONSE,
            message,
            retryable=False,
            details=raw,
            **kwargs,
        )


class RequestCancelledError(AIError):
    def __init__(self, message: str = "Request cancelled"):
        super().__init__(
            AIErrorCode.REQUEST_CANCELLED,
            message,
            retryable=False,
        )
