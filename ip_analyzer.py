"""Command-line entry point: analyse an address, export reports, or run the API server."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import log_utils
from http_client import close_async_client
from ip_types import InvalidInput, validate_ip
from network_tools import get_network_info
from port_scanning import get_port_info
from reports import WRITERS, ExportData
from settings import Settings, settings as default_settings
from threat_intel import ThreatAggregator

log = logging.getLogger("ip_analyzer")

PARTS = ("threat", "network", "ports")


async def collect(ip: str, parts: List[str], config: Settings) -> ExportData:
    """Run the requested lookups concurrently and bundle them for export."""
    tasks: Dict[str, Any] = {}
    if "threat" in parts:
        tasks["threat"] = ThreatAggregator.from_settings(config).aggregate(ip)
    if "network" in parts:
        tasks["network"] = get_network_info(ip)
    if "ports" in parts:
        tasks["ports"] = get_port_info(ip, config.SHODAN_API_KEY or "")

    try:
        settled = await asyncio.gather(*tasks.values(), return_exceptions=True)
    finally:
        await close_async_client()

    results: Dict[str, Any] = {}
    for name, value in zip(tasks, settled):
        if isinstance(value, BaseException):
            log.error("%s lookup failed for %s: %s", name, ip, value)
            continue
        results[name] = value

    threat = results.get("threat")
    network = results.get("network")
    return ExportData(
        ip=ip,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        ipInfo=(network or {}).get("geolocation"),
        threatIntel=threat.to_dict() if threat is not None else None,
        networkInfo=network,
        portInfo=results.get("ports"),
    )


def _print_summary(data: ExportData) -> None:
    print(f"\nAnalysis of {data.ip}")
    print("-" * 60)
    if data.threat_intel is not None:
        t = data.threat_intel
        print(f"Threat level:   {t['threatLevel'].upper()} (score {t['aggregatedScore']}/100, "
              f"malicious: {'yes' if t['isMalicious'] else 'no'})")
        for note in t["detections"]:
            print(f"  - {note}")
    if data.ip_info:
        info = data.ip_info
        print(f"Location:       {info.get('city', 'N/A')}, {info.get('country', 'N/A')}")
        print(f"ISP:            {info.get('isp', 'N/A')}")
    if data.network_info:
        net = data.network_info
        if net.get("reverseDns"):
            print(f"Reverse DNS:    {', '.join(net['reverseDns'])}")
        if net.get("asn"):
            print(f"ASN:            AS{net['asn']['number']} {net['asn']['name']}")
    if data.port_info:
        open_ports = [str(p["port"]) for p in data.port_info.get("commonPorts", []) if p["status"] == "open"]
        print(f"Open ports:     {', '.join(open_ports) if open_ports else 'none known'}")


def _parse_formats(raw: Optional[str], parser: argparse.ArgumentParser) -> List[str]:
    if not raw:
        return []
    formats = [f.strip().lower() for f in raw.split(",") if f.strip()]
    for fmt in formats:
        if fmt not in WRITERS:
            parser.error(f"Unknown export format '{fmt}'. Available: {', '.join(WRITERS)}")
    return formats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ip-analyzer", description="IP reputation, network and port-exposure analyzer")
    sub = parser.add_subparsers(dest="command", required=True)

    p_analyze = sub.add_parser("analyze", help="Analyse one IP address")
    p_analyze.add_argument("ip", help="IPv4 or IPv6 address")
    p_analyze.add_argument("--part", choices=PARTS + ("all",), default="all", help="Which lookups to run")
    p_analyze.add_argument("--export", help="Comma-separated export formats: json,csv,md,pdf")
    p_analyze.add_argument("--out", default=".", help="Directory for exported files")
    p_analyze.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    return parser


def main(argv: Optional[List[str]] = None, config: Settings | None = None) -> int:
    config = config or default_settings
    parser = build_parser()
    args = parser.parse_args(argv)
    log_utils.configure(json_output=args.json_logs)

    if args.command == "serve":
        from server import run
        run(config, host=args.host, port=args.port)
        return 0

    try:
        ip = validate_ip(args.ip)
    except InvalidInput as exc:
        parser.error(str(exc))

    formats = _parse_formats(args.export, parser)
    parts = list(PARTS) if args.part == "all" else [args.part]

    data = asyncio.run(collect(ip, parts, config))
    _print_summary(data)

    for fmt in formats:
        path = WRITERS[fmt](data, args.out)
        print(f"Exported {fmt.upper()}: {path}")
    return 0


__all__ = ["collect", "build_parser", "main"]


if __name__ == "__main__":
    sys.exit(main())
