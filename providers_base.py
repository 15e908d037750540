"""Base provider class for the threat-intelligence adapters."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

import httpx

from http_client import async_request
from ip_types import ProviderUnavailable

log = logging.getLogger("providers")

# Upper bound for any numeric score/count field read from a provider payload
MAX_FIELD_VALUE = 10 ** 6


class BaseProvider(ABC):
    """One threat-intelligence source.

    Subclasses implement :meth:`query` (fetch the native payload for an
    address) and :meth:`score` (normalise that payload to a 0-100
    contribution plus detection notes). :meth:`score` must be pure so the
    aggregator can treat every provider the same way.
    """

    NAME: str = ""   # report key, e.g. "abuseipdb"
    LABEL: str = ""  # human readable name used in detection notes

    def __init__(self, api_key: str | None = None, timeout: float = 15.0) -> None:
        self._key = api_key
        self.timeout = timeout
        if not self._key:
            raise ProviderUnavailable(self.NAME, "API key not configured")

    @abstractmethod
    async def query(self, address: str) -> Dict[str, Any]:
        """Return the provider's raw JSON payload for *address*."""

    @abstractmethod
    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        """Return ``(contribution, detections)`` for a payload from :meth:`query`."""

    def extract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Subset of *payload* kept in the report. Defaults to the whole body."""
        return payload

    async def _safe_request(
        self,
        url: str,
        method: str = "GET",
        params: Dict[str, Any] | None = None,
        json_data: Dict[str, Any] | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        """
        Perform one HTTP request and return the parsed JSON object.

        Every failure mode (transport error, non-2xx status, non-JSON or
        non-object body) is raised as :class:`ProviderUnavailable`. No retries
        are attempted: a provider failure is recorded once per aggregation.
        """
        try:
            resp = await async_request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_data,
                timeout=self.timeout,
                retries=0,
            )
        except asyncio.CancelledError:
            raise
        except httpx.TimeoutException:
            raise ProviderUnavailable(self.NAME, "Connection timeout - server slow to respond") from None
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.NAME, f"Network connection error ({type(exc).__name__})") from exc

        if not 200 <= resp.status_code < 300:
            log.debug("%s answered HTTP %s", self.LABEL, resp.status_code)
        if resp.status_code in (401, 403):
            raise ProviderUnavailable(self.NAME, "API key invalid or insufficient permissions")
        if resp.status_code == 404:
            raise ProviderUnavailable(self.NAME, "Resource not found")
        if resp.status_code == 429:
            raise ProviderUnavailable(self.NAME, "Rate limit exceeded")
        if not 200 <= resp.status_code < 300:
            raise ProviderUnavailable(self.NAME, f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            raise ProviderUnavailable(self.NAME, "Invalid JSON in response") from None
        if not isinstance(data, dict):
            raise ProviderUnavailable(self.NAME, "Unexpected API response structure")
        return data

    def _number(self, value: Any, field: str) -> float:
        """Coerce a score field to a number or flag the payload as malformed."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ProviderUnavailable(self.NAME, f"Missing or non-numeric '{field}' in response")
        # json accepts NaN, Infinity and arbitrarily long integers; NaN fails both comparisons
        if not 0 <= value <= MAX_FIELD_VALUE:
            raise ProviderUnavailable(self.NAME, f"Out-of-range '{field}' in response")
        return value

    @staticmethod
    def _count_text(value: float) -> str:
        return str(int(value)) if float(value).is_integer() else str(value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.NAME}>"


__all__ = ["BaseProvider"]
