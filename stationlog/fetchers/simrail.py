from __future__ import annotations

import logging

import httpx

from stationlog.config import (
    HTTP_TIMEOUT_SECONDS,
    SERVERS_PATH,
    SIMRAIL_API_BASE_URL,
    STATIONS_PATH,
)
from stationlog.models import Server, Station

logger = logging.getLogger(__name__)


class SimRailDecodeError(ValueError):
    """Response body does not have the expected shape."""


def _data_list(payload) -> list:
    """Unwrap the {"data": [...]} envelope both endpoints use."""
    if not isinstance(payload, dict):
        raise SimRailDecodeError(f"expected JSON object, got {type(payload).__name__}")
    data = payload.get("data")
    if not isinstance(data, list):
        raise SimRailDecodeError("missing or non-list 'data' field")
    return data


def _require_str(row: dict, key: str) -> str:
    val = row.get(key)
    if not isinstance(val, str):
        raise SimRailDecodeError(f"field {key!r} missing or not a string")
    return val


def parse_servers(payload) -> list[Server]:
    """Decode a /servers-open response body."""
    servers: list[Server] = []
    for row in _data_list(payload):
        if not isinstance(row, dict):
            raise SimRailDecodeError("server entry is not an object")
        active = row.get("is_active")
        if not isinstance(active, bool):
            raise SimRailDecodeError("field 'is_active' missing or not a bool")
        servers.append(Server(
            code=_require_str(row, "server_code"),
            name=_require_str(row, "server_name"),
            active=active,
        ))
    return servers


def parse_stations(payload) -> list[Station]:
    """Decode a /stations-open response body.

    `dispatched_by` may be missing, null or empty for bot-run stations.
    Only the first dispatcher's steam_id is kept.
    """
    stations: list[Station] = []
    for row in _data_list(payload):
        if not isinstance(row, dict):
            raise SimRailDecodeError("station entry is not an object")
        prefix = _require_str(row, "prefix")
        dispatched_by = row.get("dispatched_by") or []
        if not isinstance(dispatched_by, list):
            raise SimRailDecodeError(f"station {prefix}: 'dispatched_by' is not a list")
        dispatcher_id = None
        if dispatched_by:
            first = dispatched_by[0]
            if not isinstance(first, dict):
                raise SimRailDecodeError(f"station {prefix}: dispatcher entry is not an object")
            dispatcher_id = _require_str(first, "steam_id")
        stations.append(Station(prefix=prefix, dispatcher_id=dispatcher_id))
    return stations


async def fetch_servers(client: httpx.AsyncClient) -> list[Server]:
    """Fetch and decode the public server list."""
    url = f"{SIMRAIL_API_BASE_URL}{SERVERS_PATH}"
    resp = await client.get(url, timeout=HTTP_TIMEOUT_SECONDS)
    resp.raise_for_status()
    servers = parse_servers(resp.json())
    logger.info("Fetched %d servers (%d active)", len(servers), sum(s.active for s in servers))
    return servers


async def fetch_stations(client: httpx.AsyncClient, server_code: str) -> list[Station]:
    """Fetch and decode the station list of one server."""
    url = f"{SIMRAIL_API_BASE_URL}{STATIONS_PATH}"
    resp = await client.get(url, params={"serverCode": server_code}, timeout=HTTP_TIMEOUT_SECONDS)
    resp.raise_for_status()
    return parse_stations(resp.json())
