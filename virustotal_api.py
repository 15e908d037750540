"""
VirusTotal provider adapter (count of malicious engine verdicts).
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ip_types import ProviderUnavailable
from providers_base import BaseProvider


class VirusTotalProvider(BaseProvider):

    NAME = "virustotal"
    LABEL = "VirusTotal"
    BASE_URL = "https://www.virustotal.com/api/v3"
    # One malicious verdict is worth this many points; the aggregate clamps at 100.
    VERDICT_WEIGHT = 10

    def __init__(self, api_key: str | None = None, timeout: float = 10.0) -> None:
        super().__init__(api_key, timeout=timeout)

    async def query(self, address: str) -> Dict[str, Any]:
        url = f"{self.BASE_URL}/ip_addresses/{address}"
        return await self._safe_request(url, headers={"x-apikey": self._key})

    def extract(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = payload.get("data")
        attributes = data.get("attributes") if isinstance(data, dict) else None
        if not isinstance(attributes, dict):
            raise ProviderUnavailable(self.NAME, "Unexpected API response structure")
        return attributes

    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        stats = self.extract(payload).get("last_analysis_stats") or {}
        malicious = self._number(stats.get("malicious", 0), "last_analysis_stats.malicious")
        detections = []
        if malicious > 0:
            detections.append(f"{self.LABEL}: {self._count_text(malicious)} malicious detections")
        return malicious * self.VERDICT_WEIGHT, detections


__all__ = ["VirusTotalProvider"]
