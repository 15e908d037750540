"""
Pytest configuration and shared fixtures for IP OSINT Analyzer tests.
"""
import asyncio
import pathlib
import tempfile
from typing import Any, Dict, List, Tuple
from unittest.mock import Mock

import httpx
import pytest

from providers_base import BaseProvider
from settings import Settings

API_KEY_VARS = (
    "ABUSEIPDB_API_KEY",
    "VIRUSTOTAL_API_KEY",
    "IPQUALITYSCORE_API_KEY",
    "OTX_API_KEY",
    "ALIENVAULT_OTX_API_KEY",
    "ALIENVALUT_OTX_API_KEY",
    "SHODAN_API_KEY",
)


class FakeProvider(BaseProvider):
    """In-memory provider: returns a fixed contribution after an optional delay."""

    def __init__(self, name: str, contribution: float = 0, notes=(), delay: float = 0,
                 error: Exception | None = None) -> None:
        self.NAME = name
        self.LABEL = name.title()
        super().__init__(api_key="fake-key")
        self.contribution = contribution
        self.notes = list(notes)
        self.delay = delay
        self.error = error
        self.calls: List[str] = []

    async def query(self, address: str) -> Dict[str, Any]:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"value": self.contribution}

    def score(self, payload: Dict[str, Any]) -> Tuple[float, List[str]]:
        return payload["value"], list(self.notes)


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every provider credential from the environment."""
    for var in API_KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def empty_settings(clean_env):
    """Settings with no credentials and no .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def all_keys_settings(clean_env):
    return Settings(
        _env_file=None,
        ABUSEIPDB_API_KEY="abuse-key",
        VIRUSTOTAL_API_KEY="vt-key",
        IPQUALITYSCORE_API_KEY="ipqs-key",
        OTX_API_KEY="otx-key",
        SHODAN_API_KEY="shodan-key",
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield pathlib.Path(tmpdir)


def make_response(status_code: int = 200, body: Any = None, json_error: bool = False) -> Mock:
    """A stand-in for httpx.Response with just the surface the code reads."""
    resp = Mock(spec=httpx.Response)
    resp.status_code = status_code
    if json_error:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = body if body is not None else {}
    if status_code >= 400:
        request = httpx.Request("GET", "https://example.invalid")
        real = httpx.Response(status_code, request=request)
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=request, response=real
        )
    else:
        resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def mock_response():
    return make_response


@pytest.fixture
def provider_payloads():
    """Representative provider responses, keyed by report key."""
    return {
        "abuseipdb": {
            "data": {
                "ipAddress": "203.0.113.7",
                "abuseConfidenceScore": 92,
                "isWhitelisted": False,
                "countryCode": "NL",
                "totalReports": 311,
            }
        },
        "virustotal": {
            "data": {
                "id": "203.0.113.7",
                "type": "ip_address",
                "attributes": {
                    "last_analysis_stats": {
                        "malicious": 3,
                        "suspicious": 1,
                        "harmless": 60,
                        "undetected": 20,
                    },
                    "reputation": -12,
                },
            }
        },
        "ipqualityscore": {
            "success": True,
            "fraud_score": 88,
            "proxy": True,
            "vpn": False,
            "ISP": "Example Hosting",
        },
        "alienvault": {
            "indicator": "203.0.113.7",
            "pulse_info": {"count": 4, "pulses": []},
        },
    }
