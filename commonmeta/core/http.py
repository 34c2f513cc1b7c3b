"""HTTP transport shared by all fetchers and registration clients.

This module provides:
- One requests.Session per client with the commonmeta User-Agent
- Token-bucket rate limiting, one bucket per remote origin, shared process-wide
- Retry-After handling on HTTP 429
- Cancellation through a threading.Event carried by the client
- Mapping of transport errors and status >= 400 to NetworkFailureError
"""

from __future__ import annotations

import threading
import time
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests

from commonmeta import __version__
from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import (
    DecodeFailureError,
    NetworkFailureError,
    NotFoundError,
    OperationCancelled,
    RateLimitedError,
)
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
REGISTRATION_TIMEOUT = 30.0
MAX_RETRY_AFTER = 60.0


class TokenBucket:
    """Token bucket rate limiter.

    Tokens refill continuously at `rate` per second up to `burst`. Each call
    to acquire() consumes one token, sleeping until one is available.
    Thread-safe; workers in a list operation share one bucket per origin.
    """

    def __init__(self, rate: float, burst: int = 1) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.rate = rate
        self.burst = max(1, burst)
        self._tokens = float(self.burst)
        self._updated = time.monotonic()
        self._lock = threading.Lock()

    @classmethod
    def per_interval(cls, requests_: int, seconds: float) -> "TokenBucket":
        """Limiter allowing `requests_` calls per `seconds`, e.g. 450 per 30 s."""
        return cls(rate=requests_ / seconds, burst=requests_)

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.burst, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def acquire(self, cancel: Optional[threading.Event] = None) -> None:
        """Block until a token is available."""
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                wait = (1 - self._tokens) / self.rate
            if cancel is not None and cancel.wait(wait):
                raise OperationCancelled("Request cancelled while rate limited")
            if cancel is None:
                time.sleep(wait)

    def pause(self, seconds: float) -> None:
        """Drain the bucket so the next acquire waits at least `seconds`."""
        with self._lock:
            self._refill()
            self._tokens = min(self._tokens, 1 - seconds * self.rate)


_limiters: Dict[str, TokenBucket] = {}
_limiters_lock = threading.Lock()


def get_limiter(origin: str) -> TokenBucket:
    """Get the shared limiter for a remote origin (host name)."""
    with _limiters_lock:
        if origin not in _limiters:
            rate, burst = get_settings().rate_limits.get(origin, (10.0, 10))
            _limiters[origin] = TokenBucket(rate, burst)
        return _limiters[origin]


def set_limiter(origin: str, limiter: TokenBucket) -> None:
    with _limiters_lock:
        _limiters[origin] = limiter


def user_agent(email: Optional[str] = None) -> str:
    email = email or get_settings().email
    return f"commonmeta/{__version__} (https://commonmeta.org; mailto:{email})"


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, when.timestamp() - time.time())


class HttpClient:
    """HTTP client with polite defaults.

    Example:
        client = HttpClient()
        message = client.get_json("https://api.crossref.org/works/10.7554/elife.01567")
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        limiter: Optional[TokenBucket] = None,
        cancel: Optional[threading.Event] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.timeout = timeout or get_settings().timeout or DEFAULT_TIMEOUT
        self._limiter = limiter
        self.cancel = cancel
        self._session = requests.Session()
        self._session.headers.update(
            {"User-Agent": user_agent(), "Accept": "application/json"}
        )
        if headers:
            self._session.headers.update(headers)

    def _limiter_for(self, url: str) -> TokenBucket:
        if self._limiter is not None:
            return self._limiter
        return get_limiter(urlparse(url).netloc)

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelled("Request cancelled")

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self._check_cancelled()
        limiter = self._limiter_for(url)
        limiter.acquire(self.cancel)
        kwargs.setdefault("timeout", self.timeout)
        try:
            return self._session.request(method, url, **kwargs)
        except requests.Timeout as e:
            raise NetworkFailureError(f"Timeout for {url}", url=url) from e
        except requests.RequestException as e:
            raise NetworkFailureError(f"Request to {url} failed: {e}", url=url) from e

    def request(
        self,
        method: str,
        url: str,
        expected: Tuple[int, ...] = (),
        **kwargs: Any,
    ) -> requests.Response:
        """Send a request and map error responses to exceptions.

        Args:
            method: HTTP method
            url: Absolute URL
            expected: Status codes to return without raising, in addition
                to 2xx and 3xx (e.g. (404, 409) when the caller branches on them)

        Raises:
            RateLimitedError: 429 still returned after waiting Retry-After once
            NetworkFailureError: Transport error or other status >= 400
        """
        response = self._send(method, url, **kwargs)
        if response.status_code == 429 and 429 not in expected:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            wait = min(retry_after if retry_after is not None else 1.0, MAX_RETRY_AFTER)
            logger.warning("Rate limited, waiting", url=url, seconds=f"{wait:.1f}")
            self._limiter_for(url).pause(wait)
            response = self._send(method, url, **kwargs)
            if response.status_code == 429:
                raise RateLimitedError(
                    f"Rate limited: {url}",
                    retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    url=url,
                )
        if response.status_code >= 400 and response.status_code not in expected:
            raise NetworkFailureError(
                f"HTTP {response.status_code} {response.reason or ''}".strip()
                + f" for {url}",
                status=response.status_code,
                url=url,
            )
        return response

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def get_json(self, url: str, not_found_ok: bool = False, **kwargs: Any) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            NotFoundError: On 404 unless not_found_ok, then returns None
            DecodeFailureError: Body is not JSON
        """
        response = self.request("GET", url, expected=(404,), **kwargs)
        if response.status_code == 404:
            if not_found_ok:
                return None
            raise NotFoundError(f"Not found: {url}")
        try:
            return response.json()
        except ValueError as e:
            raise DecodeFailureError(f"Invalid JSON from {url}") from e

    def get_text(self, url: str, **kwargs: Any) -> str:
        response = self.request("GET", url, expected=(404,), **kwargs)
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        return response.text

    def get_bytes(self, url: str, **kwargs: Any) -> bytes:
        return self.request("GET", url, **kwargs).content

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


_default_client: Optional[HttpClient] = None


def get_client() -> HttpClient:
    """Process-wide client used by the fetchers."""
    global _default_client
    if _default_client is None:
        _default_client = HttpClient()
    return _default_client
