"""
Tests for network_tools: every sub-lookup is mocked, failures must stay local.
"""
import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import dns.resolver
import pytest

import network_tools
from ip_types import InvalidInput

RIPE_BODY = {
    "status": "ok",
    "data": {
        "resource": "8.8.8.0/24",
        "announced": True,
        "asns": [{"asn": 15169, "holder": "GOOGLE - Google LLC"}],
    },
}

GEO_BODY = {"status": "success", "country": "United States", "countryCode": "US", "city": "Mountain View"}


class FakeResolver:
    """Minimal async resolver keyed by (name, rtype)."""

    def __init__(self, ptr=None, records=None):
        self.ptr = ptr
        self.records = records or {}

    async def resolve_address(self, ip):
        if self.ptr is None:
            raise dns.resolver.NXDOMAIN()
        return [f"{name}." for name in self.ptr]

    async def resolve(self, name, rtype):
        if rtype not in self.records:
            raise dns.resolver.NoAnswer()
        return self.records[rtype]


@pytest.mark.asyncio
async def test_forward_dns_shapes_records():
    resolver = FakeResolver(records={
        "A": ["93.184.216.34"],
        "MX": [SimpleNamespace(exchange="mail.example.com.", preference=10)],
        "TXT": [SimpleNamespace(strings=[b"v=spf1 -all"])],
        "NS": ["a.iana-servers.net."],
    })
    records = await network_tools.forward_dns("example.com", resolver)

    assert records == {
        "a": ["93.184.216.34"],
        "mx": [{"exchange": "mail.example.com", "priority": 10}],
        "ns": ["a.iana-servers.net"],
        "txt": [["v=spf1 -all"]],
    }


@pytest.mark.asyncio
async def test_reverse_dns_strips_trailing_dot():
    resolver = FakeResolver(ptr=["dns.google"])
    assert await network_tools.reverse_dns("8.8.8.8", resolver) == ["dns.google"]


@pytest.mark.asyncio
async def test_asn_lookup(mock_response):
    mock = AsyncMock(return_value=mock_response(200, RIPE_BODY))
    with patch("network_tools.async_request", mock):
        asn = await network_tools.asn_lookup("8.8.8.8")

    assert mock.call_args.kwargs["params"] == {"resource": "8.8.8.8"}
    assert asn == {"number": "15169", "name": "GOOGLE - Google LLC", "country": "8.8.8.0/24", "routes": []}


@pytest.mark.asyncio
async def test_asn_lookup_no_asns(mock_response):
    body = {"data": {"resource": "10.0.0.1", "asns": []}}
    with patch("network_tools.async_request", AsyncMock(return_value=mock_response(200, body))):
        assert await network_tools.asn_lookup("10.0.0.1") is None


@pytest.mark.asyncio
async def test_geolocate_fail_status(mock_response):
    body = {"status": "fail", "message": "private range"}
    with patch("network_tools.async_request", AsyncMock(return_value=mock_response(200, body))):
        assert await network_tools.geolocate("10.0.0.1") is None


def test_whois_result_is_json_safe():
    entry = {"domain_name": None, "creation_date": datetime.datetime(2001, 1, 1), "org": "Example"}
    with patch("network_tools.whois.whois", return_value=entry):
        data = network_tools._whois_sync("93.184.216.34")
    assert data == {"domain_name": None, "creation_date": "2001-01-01 00:00:00", "org": "Example"}


@pytest.mark.asyncio
async def test_get_network_info_all_lookups(mock_response):
    resolver = FakeResolver(ptr=["dns.google"], records={"A": ["8.8.8.8"]})

    async def fake_request(method, url, **kwargs):
        return mock_response(200, RIPE_BODY if "ripe" in url else GEO_BODY)

    with patch("network_tools._make_resolver", return_value=resolver), \
            patch("network_tools.async_request", side_effect=fake_request), \
            patch("network_tools.whois.whois", return_value={"org": "Google LLC"}):
        info = await network_tools.get_network_info("8.8.8.8")

    assert info["reverseDns"] == ["dns.google"]
    assert info["dns"] == {"a": ["8.8.8.8"]}
    assert info["whois"] == {"org": "Google LLC"}
    assert info["asn"]["number"] == "15169"
    assert info["geolocation"]["city"] == "Mountain View"


@pytest.mark.asyncio
async def test_get_network_info_failures_are_omitted(mock_response, caplog):
    resolver = FakeResolver(ptr=None)

    async def fake_request(method, url, **kwargs):
        if "ripe" in url:
            return mock_response(502)
        return mock_response(200, GEO_BODY)

    with patch("network_tools._make_resolver", return_value=resolver), \
            patch("network_tools.async_request", side_effect=fake_request), \
            patch("network_tools.whois.whois", side_effect=RuntimeError("whois server unreachable")):
        info = await network_tools.get_network_info("192.0.2.5")

    assert set(info) == {"geolocation"}
    assert "ASN lookup error" in caplog.text
    assert "whois server unreachable" in caplog.text


@pytest.mark.asyncio
async def test_get_network_info_rejects_bad_ip():
    with pytest.raises(InvalidInput):
        await network_tools.get_network_info("300.1.1.1")
