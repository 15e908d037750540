"""
AlienVault OTX provider adapter (threat-pulse membership).
"""
from __future__ import annotations

import ipaddress
from typing import Any, Dict, List, Tuple

from providers_base import BaseProvider


class OTXProvider(BaseProvider):

    NAME = "alienvault"
    LABEL = "AlienVault"
    BASE_URL = "https://otx.alienvault.com/api/v1/indicators"
    # Fixed contribution for any address that appears in at least one pulse
    PULSE_SCORE = 70

    def __init__(self, api_key: str | None = None, timeout: float = 15.0) -> None:
        super().__init__(api_key, timeout=timeout)

    async def query(self, address: str) -> Dict[str, Any]:
        section = "IPv6" if ipaddress.ip_address(address).version == 6 else "IPv4"
        url = f"{self.BASE_URL}/{section}/{address}/general"
        return await self._safe_request(url, headers={"X-OTX-API-KEY": self._key})

    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        pulse_info = payload.get("pulse_info") or {}
        pulses = self._number(pulse_info.get("count", 0), "pulse_info.count")
        detections = []
        if pulses > 0:
            detections.append(f"{self.LABEL}: Found in {self._count_text(pulses)} threat pulses")
        return (self.PULSE_SCORE if pulses > 0 else 0), detections


__all__ = ["OTXProvider"]
