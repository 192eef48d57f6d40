from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    Completer,
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    LlmOutputError,
    TokenBucket,
    complete,
    make_completer,
    parse_json_object,
)

__all__ = [
    "Completer",
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "LlmOutputError",
    "TokenBucket",
    "complete",
    "make_completer",
    "parse_json_object",
]
