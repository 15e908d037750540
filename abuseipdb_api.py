"""AbuseIPDB provider adapter (abuse-confidence percentage)."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ip_types import ProviderUnavailable
from providers_base import BaseProvider


class AbuseIPDBProvider(BaseProvider):
    NAME = "abuseipdb"
    LABEL = "AbuseIPDB"
    URL = "https://api.abuseipdb.com/api/v2/check"
    # Confidence above this raises a detection note
    NOTE_THRESHOLD = 50

    def __init__(self, api_key: str | None = None, timeout: float = 10.0) -> None:
        super().__init__(api_key, timeout=timeout)

    async def query(self, address: str) -> Dict[str, Any]:
        headers = {"Key": self._key, "Accept": "application/json"}
        params = {"ipAddress": address, "maxAgeInDays": 90}
        return await self._safe_request(self.URL, params=params, headers=headers)

    def extract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProviderUnavailable(self.NAME, "Unexpected API response structure")
        return data

    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        confidence = self._number(self.extract(payload).get("abuseConfidenceScore"), "abuseConfidenceScore")
        detections = []
        if confidence > self.NOTE_THRESHOLD:
            detections.append(f"{self.LABEL}: High abuse score")
        return confidence, detections


__all__ = ["AbuseIPDBProvider"]
