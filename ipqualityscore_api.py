"""IPQualityScore provider adapter (fraud-score percentage)."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ip_types import ProviderUnavailable
from providers_base import BaseProvider


class IPQualityScoreProvider(BaseProvider):
    NAME = "ipqualityscore"
    LABEL = "IPQualityScore"
    BASE_URL = "https://ipqualityscore.com/api/json/ip"
    NOTE_THRESHOLD = 75

    def __init__(self, api_key: str | None = None, timeout: float = 10.0) -> None:
        super().__init__(api_key, timeout=timeout)

    async def query(self, address: str) -> Dict[str, Any]:
        # The key travels in the path for this API
        url = f"{self.BASE_URL}/{self._key}/{address}"
        params = {"strictness": 0, "allow_public_access_points": "true"}
        data = await self._safe_request(url, params=params)
        # Errors come back as HTTP 200 with success=false
        if data.get("success") is False:
            raise ProviderUnavailable(self.NAME, str(data.get("message") or "Request rejected"))
        return data

    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        fraud_score = self._number(payload.get("fraud_score"), "fraud_score")
        detections = []
        if fraud_score > self.NOTE_THRESHOLD:
            detections.append(f"{self.LABEL}: High fraud score")
        return fraud_score, detections


__all__ = ["IPQualityScoreProvider"]
