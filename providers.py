"""
Provider registry: turns a Settings value into the enabled provider adapters.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from abuseipdb_api import AbuseIPDBProvider
from ipqualityscore_api import IPQualityScoreProvider
from otx_api import OTXProvider
from providers_base import BaseProvider
from settings import Settings
from virustotal_api import VirusTotalProvider

log = logging.getLogger("providers")

# Declaration order; detection notes in a report follow this order.
PROVIDER_TABLE: Tuple[Tuple[type, Callable[[Settings], Optional[str]]], ...] = (
    (AbuseIPDBProvider, lambda s: s.ABUSEIPDB_API_KEY),
    (VirusTotalProvider, lambda s: s.VIRUSTOTAL_API_KEY),
    (IPQualityScoreProvider, lambda s: s.IPQUALITYSCORE_API_KEY),
    (OTXProvider, lambda s: s.OTX_API_KEY),
)

PROV_CLASSES = tuple(cls for cls, _ in PROVIDER_TABLE)


def build_providers(config: Settings) -> Tuple[BaseProvider, ...]:
    """Instantiate every provider whose credential is present in *config*."""
    enabled = []
    for cls, key_of in PROVIDER_TABLE:
        key = key_of(config)
        if not key:
            log.debug("%s disabled: no API key configured", cls.LABEL)
            continue
        enabled.append(cls(api_key=key))
    if not enabled:
        log.warning("No threat-intelligence providers configured - reports will be all-clean")
    return tuple(enabled)


__all__ = ["PROVIDER_TABLE", "PROV_CLASSES", "build_providers"]
