"""HTTP client with bounded rate-limit retries, timeouts, and request throttling."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from pricemap.common.constants import USER_AGENT
from pricemap.common.errors import StageError
from pricemap.common.logging import log_event

RETRYABLE_STATUS_CODES = {429}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 6
    initial_wait: float = 2.0
    max_wait: float = 60.0
    jitter: float = 1.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class HttpStatusError(HttpRequestError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableHttpError(HttpRequestError):
    pass


class RateLimitExhaustedError(HttpRequestError):
    error_code = "RATE_LIMIT_EXHAUSTED"


class TokenBucket:
    def __init__(self, rate_per_sec: float, capacity: float | None = None) -> None:
        self.rate_per_sec = rate_per_sec
        self.capacity = capacity if capacity is not None else rate_per_sec
        self.tokens = self.capacity
        self.updated_at = time.monotonic()
        self.lock = threading.Lock()

    def acquire(self, tokens: float = 1.0) -> None:
        while True:
            with self.lock:
                now = time.monotonic()
                elapsed = now - self.updated_at
                self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_sec)
                self.updated_at = now
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                deficit = tokens - self.tokens
                wait_for = max(deficit / self.rate_per_sec, 0.01)
            time.sleep(wait_for)


class HostRateLimiter:
    """One token bucket per host; a capacity of 1 enforces a fixed minimum spacing."""

    def __init__(self, default_rate_per_sec: float, capacity: float | None = None) -> None:
        self.default_rate_per_sec = default_rate_per_sec
        self.capacity = capacity
        self.buckets: dict[str, TokenBucket] = {}
        self.lock = threading.Lock()

    def acquire(self, host: str, tokens: float = 1.0) -> None:
        with self.lock:
            bucket = self.buckets.get(host)
            if bucket is None:
                bucket = TokenBucket(rate_per_sec=self.default_rate_per_sec, capacity=self.capacity)
                self.buckets[host] = bucket
        bucket.acquire(tokens=tokens)


def _log_retry(retry_state: RetryCallState) -> None:
    log_event(
        logger,
        "rate limited, backing off",
        level=logging.WARNING,
        event="HTTP_RETRY",
        status="retry",
        attempt=retry_state.attempt_number,
        duration_ms=int((retry_state.next_action.sleep if retry_state.next_action else 0) * 1000),
    )


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        auth: tuple[str, str] | None = None,
        min_interval_by_source: dict[str, float] | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.limiters: dict[str, HostRateLimiter] = {}
        for source_type, interval in (min_interval_by_source or {}).items():
            if interval > 0:
                self.limiters[source_type] = HostRateLimiter(default_rate_per_sec=1.0 / interval, capacity=1.0)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _host(self, url: str) -> str:
        return urlparse(url).netloc

    def _apply_rate_limit(self, url: str, source_type: str) -> None:
        limiter = self.limiters.get(source_type)
        if limiter is not None:
            limiter.acquire(self._host(url))

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status: {status}")
        if status < 200 or status >= 300:
            raise HttpStatusError(f"HTTP status: {status}", status_code=status)

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        req_timeout = timeout or self.timeout
        self._apply_rate_limit(url, source_type)

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise HttpRequestError(f"Request to {url} failed: {exc}") from exc
        self._raise_for_status_or_retry(response)

        # Some APIs answer an empty 200 when there is nothing to return.
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc
        return payload

    def request_json(
        self,
        method: str,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.initial_wait,
                max=self.retry.max_wait,
                jitter=self.retry.jitter,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            before_sleep=_log_retry,
            reraise=True,
        )
        def _wrapped() -> dict[str, Any]:
            return self._request_json(
                method,
                url,
                source_type=source_type,
                params=params,
                headers=headers,
                timeout=timeout,
            )

        try:
            return _wrapped()
        except RetryableHttpError as exc:
            raise RateLimitExhaustedError(
                f"Still rate limited after {self.retry.max_attempts} attempts: {url}"
            ) from exc

    def get_json(
        self,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        return self.request_json(
            "GET",
            url,
            source_type=source_type,
            params=params,
            headers=headers,
            timeout=timeout,
        )
