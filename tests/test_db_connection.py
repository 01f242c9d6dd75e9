import pytest
from pydantic import ValidationError

from gatewaycore.db_connection import (
    ClickhouseConnectionDetails,
    SshSettings,
    dump_connection_details,
    parse_connection_details,
)


def _details():
    password = "password"
    return ClickhouseConnectionDetails(
        protocol="https",
        host="db.example.com",
        username="user",
        password=password,
        database="analytics",
        ssh=SshSettings(
            host="bastion.example.com",
            username="user",
            private_key="placeholder",
            jump_servers=["jump.example.com"],
        ),
    )


def test_round_trip():
    details = _details()
    dumped = dump_connection_details(details)
    assert list(dumped) == ["Clickhouse"]
    assert parse_connection_details(dumped) == details


def test_optional_fields_default_to_none():
    parsed = parse_connection_details(
        {
            "Clickhouse": {
                "protocol": "http",
                "host": "localhost",
                "username": "user",
                "database": "default",
            }
        }
    )
    assert parsed.password is None
    assert parsed.ssh is None
    assert parsed.host == "localhost"


def test_unknown_variant_rejected():
    with pytest.raises(ValueError):
        parse_connection_details({"Postgres": {}})


def test_untagged_body_rejected():
    body = dump_connection_details(_details())["Clickhouse"]
    with pytest.raises(ValueError):
        parse_connection_details(body)


def test_missing_required_field_rejected():
    with pytest.raises(ValidationError):
        parse_connection_details({"Clickhouse": {"protocol": "http", "host": "localhost"}})


def test_ssh_jump_servers_required():
    with pytest.raises(ValidationError):
        SshSettings.model_validate(
            {"host": "localhost", "username": "user", "private_key": "placeholder"}
        )