# -*- coding: utf-8 -*-
"""AI request pipeline: endpoint, request builder, parser, client."""

from .client import (
    AIClient,
    AIRequestOptions,
    AIResponse,
    StreamCallbacks,
    StreamEvent,
    classify_http_error,
)
from .endpoint import EndpointNormalizer
from .errors import (
    AIError,
    AIErrorCode,
    ConfigurationError,
    HTTPRequestError,
    InvalidReasoningEffortError,
    InvalidResponseError,
    NetworkError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponsesAPIError,
    UnsupportedAPIFormatError,
)
from .model_fetcher import ModelFetcher, RemoteModelInfo
from .model_types import (
    infer_context_length,
    infer_model_abilities,
    infer_model_type,
)
from .request_builder import RequestBuilder
from .response_parser import ParsedResponse, ResponseParser, Usage
from .service import AIService
from .text import clean_output, render_prompt, smart_truncate
from .thinking import ThinkingProcessor, ThinkingResult
from .transport import (
    HttpxTransport,
    StreamingTransport,
    StreamRequest,
    Transport,
    TransportError,
    TransportRequest,
    TransportResponse,
)

__all__ = [
    "AIClient",
    "AIRequestOptions",
    "AIResponse",
    "StreamCallbacks",
    "StreamEvent",
    "classify_http_error",
    "EndpointNormalizer",
    "AIError",
    "AIErrorCode",
    "ConfigurationError",
    "HTTPRequestError",
    "InvalidReasoningEffortError",
    "InvalidResponseError",
    "NetworkError",
    "RateLimitError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ResponsesAPIError",
    "UnsupportedAPIFormatError",
    "ModelFetcher",
    "RemoteModelInfo",
    "infer_context_length",
    "infer_model_abilities",
    "infer_model_type",
    "RequestBuilder",
    "ParsedResponse",
    "ResponseParser",
    "Usage",
    "AIService",
    "clean_output",
    "render_prompt",
    "smart_truncate",
    "ThinkingProcessor",
    "ThinkingResult",
    "HttpxTransport",
    "StreamingTransport",
    "StreamRequest",
    "Transport",
    "TransportError",
    "TransportRequest",
    "TransportResponse",
]
