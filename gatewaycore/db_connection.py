"""Database connection settings."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class SshSettings(BaseModel):
    """SSH tunnel used to reach a database host."""

    host: str
    username: str
    private_key: str
    jump_servers: list[str]


class ClickhouseConnectionDetails(BaseModel):
    """Where and how to connect to a ClickHouse database."""

    protocol: str
    host: str
    username: str
    password: Optional[str] = None
    database: str
    ssh: Optional[SshSettings] = None


ConnectionDetails = ClickhouseConnectionDetails

_TAG = "Clickhouse"


def parse_connection_details(data: Any) -> ConnectionDetails:
    """Read externally tagged connection details, e.g. ``{"Clickhouse": {...}}``."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError("expected an object with exactly one variant key")
    tag, body = next(iter(data.items()))
    if tag != _TAG:
        raise ValueError(f"unknown variant `{tag}`, expected `{_TAG}`")
    return ClickhouseConnectionDetails.model_validate(body)


def dump_connection_details(details: ConnectionDetails) -> dict[str, Any]:
    """Write connection details in their externally tagged form."""
    return {_TAG: details.model_dump()}