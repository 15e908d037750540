"""
Network context for an address: reverse/forward DNS, WHOIS, ASN and geolocation.

Every lookup is best-effort. A failing lookup is logged and its key is left
out of the result; the function itself only raises for an unusable address.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import dns.asyncresolver
import dns.exception
import httpx
import whois

from http_client import async_request
from ip_types import validate_ip

log = logging.getLogger("network_tools")

TIMEOUT = 5

RIPESTAT_URL = "https://stat.ripe.net/data/prefix-overview/data.json"
# ip-api field bitmask selecting every documented field
IP_API_URL = "http://ip-api.com/json/{ip}?fields=66846719"

FORWARD_RECORD_TYPES = ("A", "AAAA", "MX", "NS", "TXT", "CNAME")


def _make_resolver() -> dns.asyncresolver.Resolver:
    resolver = dns.asyncresolver.Resolver()
    resolver.timeout = TIMEOUT
    resolver.lifetime = TIMEOUT * 2
    return resolver


async def reverse_dns(ip: str, resolver: dns.asyncresolver.Resolver | None = None) -> List[str]:
    """PTR hostnames for *ip* (without trailing dots)."""
    resolver = resolver or _make_resolver()
    answers = await resolver.resolve_address(ip)
    return [str(rdata).rstrip(".") for rdata in answers]


async def _query_records(resolver: dns.asyncresolver.Resolver, name: str, rtype: str) -> Optional[list]:
    """Query one record type; ``None`` when the name has no such records."""
    try:
        answers = await resolver.resolve(name, rtype)
    except dns.exception.DNSException as exc:
        log.debug("%s lookup for %s failed: %s", rtype, name, exc)
        return None

    if rtype == "MX":
        return [{"exchange": str(r.exchange).rstrip("."), "priority": r.preference} for r in answers]
    if rtype == "TXT":
        return [[s.decode(errors="replace") for s in r.strings] for r in answers]
    if rtype in ("NS", "CNAME"):
        return [str(r).rstrip(".") for r in answers]
    return [str(r) for r in answers]


async def forward_dns(hostname: str, resolver: dns.asyncresolver.Resolver | None = None) -> Dict[str, list]:
    """A/AAAA/MX/NS/TXT/CNAME records for *hostname*; empty types are omitted."""
    resolver = resolver or _make_resolver()
    results = await asyncio.gather(*(_query_records(resolver, hostname, t) for t in FORWARD_RECORD_TYPES))
    return {
        rtype.lower(): records
        for rtype, records in zip(FORWARD_RECORD_TYPES, results)
        if records is not None
    }


def _whois_sync(ip: str) -> Dict[str, Any]:
    entry = whois.whois(ip)
    # WhoisEntry holds datetimes; round-trip through JSON to keep the report serialisable
    return json.loads(json.dumps(dict(entry), default=str))


async def whois_lookup(ip: str) -> Dict[str, Any]:
    return await asyncio.to_thread(_whois_sync, ip)


async def asn_lookup(ip: str) -> Optional[Dict[str, Any]]:
    """First origin ASN for *ip* according to RIPEstat."""
    resp = await async_request("GET", RIPESTAT_URL, params={"resource": ip}, timeout=TIMEOUT * 2)
    resp.raise_for_status()
    data = resp.json().get("data") or {}
    asns = data.get("asns") or []
    if not asns:
        return None
    first = asns[0]
    return {
        "number": str(first.get("asn", "")),
        "name": first.get("holder", ""),
        "country": data.get("resource") or "",
        "routes": data.get("announced_prefixes") or [],
    }


async def geolocate(ip: str) -> Optional[Dict[str, Any]]:
    resp = await async_request("GET", IP_API_URL.format(ip=ip), timeout=TIMEOUT * 2)
    resp.raise_for_status()
    data = resp.json()
    if data.get("status") == "fail":
        log.info("Geolocation unavailable for %s: %s", ip, data.get("message", "unknown reason"))
        return None
    return data


async def _dns_section(ip: str, result: Dict[str, Any]) -> None:
    resolver = _make_resolver()
    try:
        hostnames = await reverse_dns(ip, resolver)
    except dns.exception.DNSException as exc:
        log.info("Reverse DNS lookup failed for %s: %s", ip, exc)
        return
    result["reverseDns"] = hostnames
    if hostnames:
        result["dns"] = await forward_dns(hostnames[0], resolver)


async def _optional(label: str, ip: str, coro) -> Any:
    try:
        return await coro
    except asyncio.CancelledError:
        raise
    except httpx.HTTPStatusError as exc:
        log.warning("%s lookup error for %s: HTTP %s", label, ip, exc.response.status_code)
    except Exception as exc:
        # python-whois raises its own error types for unparseable responses
        log.warning("%s lookup error for %s: %s: %s", label, ip, type(exc).__name__, exc)
    return None


async def get_network_info(ip: str) -> Dict[str, Any]:
    """Collect DNS, WHOIS, ASN and geolocation data for *ip*."""
    ip = validate_ip(ip)
    result: Dict[str, Any] = {}

    _, whois_data, asn, geo = await asyncio.gather(
        _optional("DNS", ip, _dns_section(ip, result)),
        _optional("WHOIS", ip, whois_lookup(ip)),
        _optional("ASN", ip, asn_lookup(ip)),
        _optional("Geolocation", ip, geolocate(ip)),
    )
    if whois_data:
        result["whois"] = whois_data
    if asn:
        result["asn"] = asn
    if geo:
        result["geolocation"] = geo
    return result


__all__ = [
    "get_network_info",
    "reverse_dns",
    "forward_dns",
    "whois_lookup",
    "asn_lookup",
    "geolocate",
]
