"""
Outbound HTTP for the analyzer: provider queries, RIPEstat, ip-api and Shodan.

One lazily created httpx.AsyncClient (HTTP/2, pooled) is shared by every
caller. Requests optionally pass through a process-wide aiolimiter bucket
(``HTTP_RPS_LIMIT``) and are retried on 429/5xx and transport errors
according to a :class:`RetryPolicy`. Provider adapters opt out with
``retries=0`` so each aggregation records a single attempt per provider.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from aiolimiter import AsyncLimiter

from settings import settings

log = logging.getLogger("http_client")

USER_AGENT = "ip-osint-analyzer/1.0"

_client: Optional[httpx.AsyncClient] = None
_client_lock = asyncio.Lock()


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait in between."""
    retries: int
    backoff_base: float
    backoff_cap: float

    @classmethod
    def from_settings(cls, retries: Optional[int] = None) -> "RetryPolicy":
        return cls(
            retries=settings.HTTP_MAX_RETRIES if retries is None else max(0, retries),
            backoff_base=settings.HTTP_BACKOFF_BASE,
            backoff_cap=settings.HTTP_BACKOFF_CAP,
        )

    def delay(self, attempt: int) -> float:
        """Capped exponential delay for *attempt* (0-based) plus up to one base of jitter."""
        return min(self.backoff_cap, self.backoff_base * (2 ** attempt)) + random.uniform(0.0, self.backoff_base)


def _timeout(seconds: float) -> httpx.Timeout:
    # Connect gets its own window, never longer than 10s
    return httpx.Timeout(seconds, connect=min(10.0, max(1.0, seconds)))


async def get_async_client() -> httpx.AsyncClient:
    """Return the shared client, creating it on first use (callers must not close it)."""
    global _client
    if _client is not None and not _client.is_closed:
        return _client
    async with _client_lock:
        if _client is None or _client.is_closed:
            _client = httpx.AsyncClient(
                timeout=_timeout(settings.HTTP_DEFAULT_TIMEOUT),
                headers={"User-Agent": USER_AGENT},
                http2=True,
            )
    return _client


async def close_async_client() -> None:
    """Close the shared client; the next request opens a fresh one."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


class _Unlimited:
    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


def _build_limiter(rps: float) -> Any:
    if not rps:
        return _Unlimited()
    return AsyncLimiter(max_rate=max(0.1, float(rps)), time_period=1.0)


_limiter = _build_limiter(settings.HTTP_RPS_LIMIT)


class TransientHTTPStatus(Exception):
    """A retryable status (429/5xx); carries the response for the last attempt."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.status_code = response.status_code
        self.response = response


def is_transient_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


async def async_request(
    method: str,
    url: str,
    *,
    headers: Optional[dict[str, str]] = None,
    params: Optional[dict[str, Any]] = None,
    json: Optional[dict[str, Any]] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
) -> httpx.Response:
    """Send one logical request and return the final response.

    Non-transient error statuses (401/403/404...) come back untouched for the
    caller to interpret. When retries run out, a transient status is returned
    as-is and a transport error is re-raised.
    """
    client = await get_async_client()
    policy = RetryPolicy.from_settings(retries)
    per_call_timeout = _timeout(settings.HTTP_DEFAULT_TIMEOUT if timeout is None else timeout)
    verb = method.upper()

    attempt = 0
    while True:
        try:
            async with _limiter:
                resp = await client.request(
                    verb, url, headers=headers, params=params, json=json, timeout=per_call_timeout,
                )
            if is_transient_status(resp.status_code):
                raise TransientHTTPStatus(resp)
            return resp
        except (httpx.TransportError, TransientHTTPStatus) as exc:
            if attempt >= policy.retries:
                if isinstance(exc, TransientHTTPStatus):
                    return exc.response
                raise
            delay = policy.delay(attempt)
            log.warning("HTTP retry %s/%s for %s %s in %.2fs (%s)",
                        attempt + 1, policy.retries, verb, url, delay, exc)
            await asyncio.sleep(delay)
            attempt += 1


__all__ = [
    "RetryPolicy",
    "async_request",
    "get_async_client",
    "close_async_client",
]
