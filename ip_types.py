"""Report models, address validation and error types for the IP OSINT Analyzer."""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "AnalyzerError",
    "InvalidInput",
    "ProviderUnavailable",
    "ThreatLevel",
    "ProviderOutcome",
    "AggregateReport",
    "classify_score",
    "normalise_ip",
    "validate_ip",
]


class AnalyzerError(Exception):
    """Base class for analyzer errors."""


class InvalidInput(AnalyzerError, ValueError):
    """The address handed to an analysis call is empty or unusable."""


class ProviderUnavailable(AnalyzerError):
    """A single provider call failed (network, auth, non-2xx, malformed body)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ThreatLevel(str, Enum):
    CLEAN = "clean"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def is_malicious(self) -> bool:
        return self in (ThreatLevel.HIGH, ThreatLevel.CRITICAL)


# Evaluated top-down; first threshold the score reaches wins.
_LADDER: Tuple[Tuple[int, ThreatLevel], ...] = (
    (80, ThreatLevel.CRITICAL),
    (60, ThreatLevel.HIGH),
    (40, ThreatLevel.MEDIUM),
    (20, ThreatLevel.LOW),
)


def classify_score(score: int) -> ThreatLevel:
    """Map an aggregated 0-100 score onto its threat level."""
    for threshold, level in _LADDER:
        if score >= threshold:
            return level
    return ThreatLevel.CLEAN


@dataclass(frozen=True)
class ProviderOutcome:
    """Settled result of one provider branch: either a payload or an error."""
    provider: str
    ok: bool
    payload: Optional[Dict[str, Any]] = None
    contribution: float = 0
    detections: Tuple[str, ...] = field(default_factory=tuple)
    error: str = ""

    @classmethod
    def success(cls, provider: str, payload: Dict[str, Any], contribution: float,
                detections: Tuple[str, ...] = ()) -> "ProviderOutcome":
        return cls(provider=provider, ok=True, payload=payload,
                   contribution=contribution, detections=tuple(detections))

    @classmethod
    def failure(cls, provider: str, error: str) -> "ProviderOutcome":
        return cls(provider=provider, ok=False, error=error)


class AggregateReport(BaseModel):
    """Merged threat-intelligence verdict for one address."""

    model_config = ConfigDict(frozen=True)

    provider_results: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict)
    aggregated_score: int = Field(default=0, ge=0, le=100)
    threat_level: ThreatLevel = ThreatLevel.CLEAN
    is_malicious: bool = False
    detections: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Serialise with the camelCase keys used on the wire.

        Provider payloads are emitted as top-level keys, only for providers
        that answered.
        """
        out: Dict[str, Any] = {
            name: payload
            for name, payload in self.provider_results.items()
            if payload is not None
        }
        out.update(
            aggregatedScore=self.aggregated_score,
            threatLevel=self.threat_level.value,
            isMalicious=self.is_malicious,
            detections=list(self.detections),
        )
        return out


def normalise_ip(value: str) -> str:
    """Strip whitespace, brackets and a trailing port from *value*."""
    v = value.strip()
    # Bracketed IPv6, with or without port: [2001:db8::1]:80
    if v.startswith("[") and "]" in v:
        return v[1:v.index("]")]
    # IPv4 with port: 192.168.1.1:80
    if v.count(":") == 1:
        host, _, port = v.partition(":")
        if port.isdigit() and 1 <= int(port) <= 65535:
            return host
    return v


def validate_ip(value: str | None) -> str:
    """Return the canonical form of *value* or raise :class:`InvalidInput`."""
    if value is None or not value.strip():
        raise InvalidInput("IP address cannot be empty")
    candidate = normalise_ip(value)
    try:
        return str(ipaddress.ip_address(candidate.split("%", 1)[0]))
    except ValueError:
        raise InvalidInput(
            f"Invalid IP address: '{value.strip()}'. Expected format: 192.168.1.1 or 2001:db8::1"
        ) from None
