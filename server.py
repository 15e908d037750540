"""
HTTP API for the IP OSINT Analyzer (aiohttp).

Routes (all GET, under /api/):
    /api/health
    /api/threat-intel/{ip}
    /api/network/{ip}
    /api/ports/{ip}
    /api/analyze/{ip}

Data endpoints answer ``{...data, "cached": bool}`` and share one TTL cache.
"""
from __future__ import annotations

import asyncio
import collections
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web
from aiolimiter import AsyncLimiter

from http_client import close_async_client
from ip_types import InvalidInput, validate_ip
from network_tools import get_network_info
from port_scanning import get_port_info
from report_cache import ReportCache
from settings import Settings, settings as default_settings
from threat_intel import ThreatAggregator

log = logging.getLogger("server")

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
# Upper bound on remembered clients; least recently seen are dropped first
MAX_TRACKED_CLIENTS = 4096

CONFIG_KEY = web.AppKey("config", Settings)
CACHE_KEY = web.AppKey("cache", ReportCache)
AGGREGATOR_KEY = web.AppKey("aggregator", ThreatAggregator)
NETWORK_KEY = web.AppKey("network_lookup", object)
PORTS_KEY = web.AppKey("port_lookup", object)
LIMITERS_KEY = web.AppKey("limiters", collections.OrderedDict)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _client_id(request: web.Request) -> str:
    return request.remote or "unknown"


def _get_limiter(app: web.Application, client: str) -> AsyncLimiter:
    config = app[CONFIG_KEY]
    limiters = app[LIMITERS_KEY]
    if client not in limiters:
        limiters[client] = AsyncLimiter(config.RATE_LIMIT_MAX, config.RATE_LIMIT_WINDOW)
        while len(limiters) > MAX_TRACKED_CLIENTS:
            limiters.popitem(last=False)
    else:
        limiters.move_to_end(client)
    return limiters[client]


@web.middleware
async def cors_middleware(request: web.Request, handler):
    response = await handler(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


@web.middleware
async def rate_limit_middleware(request: web.Request, handler):
    if request.path.startswith("/api/"):
        limiter = _get_limiter(request.app, _client_id(request))
        if not limiter.has_capacity():
            log.info("Rate limit hit for %s on %s", _client_id(request), request.path)
            return web.json_response({"error": RATE_LIMIT_MESSAGE}, status=429)
        await limiter.acquire()
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except InvalidInput as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except Exception as exc:
        log.exception("Unhandled error on %s", request.path)
        return web.json_response({"error": str(exc) or "Internal server error"}, status=500)


async def _cached(
    request: web.Request,
    endpoint: str,
    produce: Callable[[str], Awaitable[Dict[str, Any]]],
) -> web.Response:
    ip = validate_ip(request.match_info["ip"])
    cache = request.app[CACHE_KEY]
    key = cache.key(endpoint, ip)

    cached = cache.get(key)
    if cached is not None:
        return web.json_response({**cached, "cached": True})

    data = await produce(ip)
    cache.set(key, data)
    return web.json_response({**data, "cached": False})


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": _now_iso()})


async def threat_intel(request: web.Request) -> web.Response:
    aggregator = request.app[AGGREGATOR_KEY]

    async def produce(ip: str) -> Dict[str, Any]:
        return (await aggregator.aggregate(ip)).to_dict()

    return await _cached(request, "threat", produce)


async def network(request: web.Request) -> web.Response:
    return await _cached(request, "network", request.app[NETWORK_KEY])


async def ports(request: web.Request) -> web.Response:
    return await _cached(request, "ports", request.app[PORTS_KEY])


async def analyze(request: web.Request) -> web.Response:
    app = request.app

    async def threat_part(ip: str) -> Dict[str, Any]:
        return (await app[AGGREGATOR_KEY].aggregate(ip)).to_dict()

    async def produce(ip: str) -> Dict[str, Any]:
        parts = await asyncio.gather(
            threat_part(ip), app[NETWORK_KEY](ip), app[PORTS_KEY](ip),
            return_exceptions=True,
        )
        names = ("threatIntel", "network", "ports")
        result: Dict[str, Any] = {}
        for name, part in zip(names, parts):
            if isinstance(part, BaseException):
                log.warning("%s failed for %s: %s", name, ip, part)
                result[name] = None
            else:
                result[name] = part
        return result

    return await _cached(request, "full", produce)


async def _on_startup(app: web.Application) -> None:
    log.info("API keys configured: %s", app[CONFIG_KEY].configured_keys())


async def _on_cleanup(app: web.Application) -> None:
    await close_async_client()


def create_app(
    config: Settings | None = None,
    *,
    aggregator: Optional[ThreatAggregator] = None,
    network_lookup: Optional[Callable[[str], Awaitable[Dict[str, Any]]]] = None,
    port_lookup: Optional[Callable[[str], Awaitable[Dict[str, Any]]]] = None,
    cache: Optional[ReportCache] = None,
) -> web.Application:
    """Build the aiohttp application; collaborators can be injected for tests."""
    config = config or default_settings
    app = web.Application(middlewares=[cors_middleware, rate_limit_middleware, error_middleware])
    app[CONFIG_KEY] = config
    # ReportCache defines __len__, so an empty injected cache is falsy
    app[CACHE_KEY] = cache if cache is not None else ReportCache(ttl=config.CACHE_TTL)
    app[AGGREGATOR_KEY] = aggregator or ThreatAggregator.from_settings(config)
    app[NETWORK_KEY] = network_lookup or get_network_info
    app[PORTS_KEY] = port_lookup or (lambda ip: get_port_info(ip, config.SHODAN_API_KEY or ""))
    app[LIMITERS_KEY] = collections.OrderedDict()

    app.router.add_get("/api/health", health)
    app.router.add_get("/api/threat-intel/{ip}", threat_intel)
    app.router.add_get("/api/network/{ip}", network)
    app.router.add_get("/api/ports/{ip}", ports)
    app.router.add_get("/api/analyze/{ip}", analyze)

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


def run(config: Settings | None = None, host: str | None = None, port: int | None = None) -> None:
    config = config or default_settings
    host = host or config.HOST
    port = port or config.PORT
    log.info("Server running on http://%s:%s (API under /api/)", host, port)
    web.run_app(create_app(config), host=host, port=port, print=None)


__all__ = ["create_app", "run"]
