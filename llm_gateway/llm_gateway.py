from __future__ import annotations  # Completion gateway: transport, rate limiting, retries, JSON parsing

import json
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import LlmRoute


logger = logging.getLogger(__name__)  # Module logger setup


_BUCKETS: Dict[str, "TokenBucket"] = {}
_BUCKETS_GUARD = threading.Lock()


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmOutputError(LlmGatewayError):  # Model output failed JSON or schema validation
    pass


T = TypeVar("T", bound=BaseModel)

Completer = Callable[[str, str], str]


class TokenBucket:  # Burst-limited request pacing shared per route
    def __init__(self, capacity: int, refill_per_s: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._capacity = capacity
        self._refill_per_s = refill_per_s
        self._clock = clock
        self._tokens = float(capacity)
        self._last = clock()
        self._lock = threading.Lock()

    def acquire(self, sleep: Callable[[float], None] = time.sleep) -> None:
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                wait = (1.0 - self._tokens) / self._refill_per_s
            sleep(min(wait, 0.1))

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last
        if elapsed > 0:
            self._tokens = min(float(self._capacity), self._tokens + elapsed * self._refill_per_s)
            self._last = now


def _bucket_for(cfg: LlmRoute) -> TokenBucket:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _BUCKETS_GUARD:
        bucket = _BUCKETS.get(key)
        if bucket is None:
            bucket = TokenBucket(cfg.burst, cfg.rate_per_s)
            _BUCKETS[key] = bucket
    return bucket


class _RetryableStatus(LlmGatewayError):  # 429/5xx responses eligible for backoff
    pass


def complete(
    system: str,
    user: str,
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:  # Send one system/user exchange and return the raw assistant text
    payload: Dict[str, Any] = {
        "model": cfg.model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        "temperature": cfg.temperature,
    }
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if not api_key:
            raise LlmGatewayError(f"LLM provider is not configured: {cfg.api_key_env} is unset")
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    url = f"{cfg.base_url}{cfg.endpoint}"
    attempts = cfg.max_retries + 1
    delay = cfg.backoff_initial_s
    preview = _preview(system)
    logger.info("LLM request start route=%s model=%s attempts=%d preview=%s", cfg.name, cfg.model, attempts, preview)
    bucket = _bucket_for(cfg)
    last_error: Optional[Exception] = None
    for attempt in range(attempts):
        if attempt > 0:
            logger.warning(
                "LLM retry route=%s attempt=%d/%d delay=%.2fs reason=%s",
                cfg.name,
                attempt + 1,
                attempts,
                delay,
                last_error,
            )
            sleep(delay)
            delay *= cfg.backoff_factor
        bucket.acquire(sleep)
        try:
            content = _send(url, payload, headers, cfg.timeout_s, client)
        except (_RetryableStatus, httpx.TransportError) as exc:
            last_error = exc
            continue
        logger.info("LLM request done route=%s model=%s attempt=%d", cfg.name, cfg.model, attempt + 1)
        return content
    logger.error("LLM retries exhausted route=%s: %s", cfg.name, last_error)
    raise LlmGatewayError("LLM request failed after retries") from last_error


def make_completer(cfg: LlmRoute, client: Optional[HttpClient] = None) -> Completer:  # Bind a route into complete(system, user)
    def _complete(system: str, user: str) -> str:
        return complete(system, user, cfg=cfg, client=client)

    return _complete


def parse_json_object(raw: str, schema: Type[T]) -> T:  # Slice the outermost JSON object and validate it
    text = _strip_code_fences(raw)
    first = text.find("{")
    last = text.rfind("}")
    candidate = text[first : last + 1] if first >= 0 and last > first else text
    try:
        return schema.model_validate_json(candidate)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("LLM output validation failed schema=%s: %s", schema.__name__, exc)
        raise LlmOutputError(f"LLM output validation failed: {exc}") from exc


def _send(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> str:
    response, close_cb = _post(url, payload, headers, timeout, client)
    try:
        status = response.status_code
        if status == 429 or status >= 500:
            raise _RetryableStatus(f"LLM returned status {status}")
        if status >= 400:
            logger.error("LLM error status: %s", status)
            raise LlmGatewayError(f"LLM returned status {status}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Invalid JSON payload from LLM: %s", exc)
            raise LlmGatewayError("LLM payload was not JSON") from exc
        return _extract_content(data)
    finally:
        _close_safely(close_cb)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
        return response, None
    http_client = httpx.Client(timeout=timeout)
    response = http_client.post(url, json=payload, headers=headers)
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _preview(text: str) -> str:  # Build preview string for logging
    stripped = text.strip()
    line = stripped.splitlines()[0] if stripped else ""
    if len(line) > 120:
        line = line[:117] + "..."
    return line


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        while lines and lines[-1].strip() in {"", "```"}:
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text
