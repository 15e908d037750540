"""Threat aggregation: fan out to the enabled providers and fold their signals into one report."""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence

from ip_types import (
    AggregateReport,
    InvalidInput,
    ProviderOutcome,
    ProviderUnavailable,
    classify_score,
)
from providers import build_providers
from providers_base import BaseProvider
from settings import Settings, settings as default_settings

log = logging.getLogger("threat_intel")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate_score(contributions: Sequence[float]) -> int:
    """Rounded mean of *contributions*, clamped to [0, 100]; 0 when empty."""
    if not contributions:
        return 0
    mean = sum(contributions) / len(contributions)
    return max(0, min(100, _round_half_up(mean)))


def build_report(outcomes: Iterable[ProviderOutcome]) -> AggregateReport:
    """Fold settled provider outcomes (in declaration order) into a report.

    Failed outcomes keep their slot in ``provider_results`` (as ``None``) but
    are left out of the score and the detection list.
    """
    provider_results: Dict[str, Optional[dict]] = {}
    contributions: List[float] = []
    detections: List[str] = []
    for outcome in outcomes:
        provider_results[outcome.provider] = outcome.payload if outcome.ok else None
        if not outcome.ok:
            continue
        contributions.append(outcome.contribution)
        detections.extend(outcome.detections)

    score = aggregate_score(contributions)
    level = classify_score(score)
    return AggregateReport(
        provider_results=provider_results,
        aggregated_score=score,
        threat_level=level,
        is_malicious=level.is_malicious,
        detections=tuple(detections),
    )


class ThreatAggregator:
    """Queries every enabled provider for one address and merges the answers."""

    def __init__(self, providers: Iterable[BaseProvider]) -> None:
        self.providers = tuple(providers)

    @classmethod
    def from_settings(cls, config: Settings) -> "ThreatAggregator":
        return cls(build_providers(config))

    async def _attempt(self, provider: BaseProvider, address: str) -> ProviderOutcome:
        """Run one provider branch to completion and capture its outcome."""
        name = provider.NAME
        try:
            payload = await provider.query(address)
            contribution, notes = provider.score(payload)
            kept = provider.extract(payload)
        except asyncio.CancelledError:
            raise
        except ProviderUnavailable as exc:
            log.warning("%s unavailable for %s: %s", provider.LABEL, address, exc.message)
            return ProviderOutcome.failure(name, exc.message)
        except Exception as exc:
            log.warning("%s failed for %s: %s: %s", provider.LABEL, address, type(exc).__name__, exc)
            return ProviderOutcome.failure(name, f"{type(exc).__name__}: {exc}")
        return ProviderOutcome.success(name, kept, contribution, tuple(notes))

    async def gather(self, address: str) -> List[ProviderOutcome]:
        """Settled outcomes for every enabled provider, in declaration order."""
        if address is None or not str(address).strip():
            raise InvalidInput("IP address cannot be empty")
        address = str(address).strip()
        # gather() returns results in argument order regardless of completion order
        return list(await asyncio.gather(*(self._attempt(p, address) for p in self.providers)))

    async def aggregate(self, address: str) -> AggregateReport:
        outcomes = await self.gather(address)
        report = build_report(outcomes)
        log.info(
            "Threat intel for %s: score=%s level=%s (%d/%d providers answered)",
            address.strip(), report.aggregated_score, report.threat_level.value,
            sum(1 for o in outcomes if o.ok), len(outcomes),
        )
        return report


async def analyze_threat_intelligence(address: str, config: Settings | None = None) -> AggregateReport:
    """Convenience entry point: aggregate with providers built from *config* (process settings if omitted)."""
    aggregator = ThreatAggregator.from_settings(config or default_settings)
    return await aggregator.aggregate(address)


__all__ = [
    "ThreatAggregator",
    "aggregate_score",
    "build_report",
    "analyze_threat_intelligence",
]
