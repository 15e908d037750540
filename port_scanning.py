"""Port exposure for an address, taken from Shodan's host index (no active scanning)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from http_client import async_request
from ip_types import validate_ip
from settings import settings

log = logging.getLogger("port_scanning")

SHODAN_HOST_URL = "https://api.shodan.io/shodan/host/{ip}"

COMMON_PORTS = (
    (21, "FTP"),
    (22, "SSH"),
    (23, "Telnet"),
    (25, "SMTP"),
    (53, "DNS"),
    (80, "HTTP"),
    (110, "POP3"),
    (143, "IMAP"),
    (443, "HTTPS"),
    (445, "SMB"),
    (3306, "MySQL"),
    (3389, "RDP"),
    (5432, "PostgreSQL"),
    (5900, "VNC"),
    (8080, "HTTP-Alt"),
    (8443, "HTTPS-Alt"),
)


def common_port_table(open_ports: List[int] | None = None) -> List[Dict[str, Any]]:
    """Common ports marked open/closed against *open_ports*, or all unknown."""
    rows = []
    for port, service in COMMON_PORTS:
        if open_ports is None:
            status = "unknown"
        else:
            status = "open" if port in open_ports else "closed"
        rows.append({"port": port, "service": service, "status": status})
    return rows


def _shodan_summary(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "ports": data.get("ports") or [],
        "services": data.get("data") or [],
        "vulns": data.get("vulns") or [],
        "hostnames": data.get("hostnames") or [],
        "os": data.get("os"),
        "tags": data.get("tags") or [],
    }


async def get_port_info(ip: str, shodan_key: str | None = None) -> Dict[str, Any]:
    """Return the common-port table, enriched with Shodan data when a key is set."""
    ip = validate_ip(ip)
    key = shodan_key if shodan_key is not None else settings.SHODAN_API_KEY
    result: Dict[str, Any] = {"commonPorts": common_port_table()}
    if not key:
        return result

    try:
        resp = await async_request("GET", SHODAN_HOST_URL.format(ip=ip), params={"key": key})
        if resp.status_code == 404:
            log.info("IP %s not found in Shodan database", ip)
            return result
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as exc:
        log.warning("Shodan error for %s: HTTP %s", ip, exc.response.status_code)
        return result
    except (httpx.HTTPError, ValueError) as exc:
        log.warning("Shodan error for %s: %s", ip, exc)
        return result

    result["shodan"] = _shodan_summary(data)
    ports = data.get("ports")
    if isinstance(ports, list):
        result["commonPorts"] = common_port_table(ports)
    return result


__all__ = ["COMMON_PORTS", "common_port_table", "get_port_info"]
