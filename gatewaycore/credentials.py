"""Provider credentials and tenant identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

_KEY_FIELD_ALIASES = AliasChoices("api_key", "ApiKey")


class ApiKeyCredentials(BaseModel):
    """A bare API key."""

    model_config = ConfigDict(extra="forbid")

    api_key: str = Field(validation_alias=_KEY_FIELD_ALIASES)


class ApiKeyWithEndpointCredentials(BaseModel):
    """An API key bound to a custom endpoint."""

    model_config = ConfigDict(extra="ignore")

    api_key: str = Field(validation_alias=_KEY_FIELD_ALIASES)
    endpoint: str


class AwsCredentials(BaseModel):
    """AWS access key pair; the region falls back to the deployment default."""

    model_config = ConfigDict(extra="forbid")

    access_key: str
    access_secret: str
    region: Optional[str] = None


class LangDbCredentials(BaseModel):
    """Hosted credentials; carries no data and is written as null."""


class IntegrationCredentials(BaseModel):
    """Free-form secrets for an integration."""

    secrets: dict[str, Any]


@dataclass(frozen=True)
class GatewayTenant:
    """The tenant and project a gateway serves."""

    name: str
    project_slug: str


Credentials = Union[
    ApiKeyCredentials, ApiKeyWithEndpointCredentials, AwsCredentials, LangDbCredentials
]

_OBJECT_VARIANTS = (ApiKeyCredentials, ApiKeyWithEndpointCredentials, AwsCredentials)


def parse_credentials(data: Any) -> Credentials:
    """Build credentials from decoded JSON, trying each shape in turn."""
    if data is None:
        return LangDbCredentials()
    if isinstance(data, dict):
        for variant in _OBJECT_VARIANTS:
            try:
                return variant.model_validate(data)
            except ValidationError:
                continue
    raise ValueError("data did not match any variant of untagged enum Credentials")


def dump_credentials(credentials: Credentials) -> Optional[dict[str, Any]]:
    """Turn credentials into JSON-ready data; hosted credentials become None."""
    if isinstance(credentials, LangDbCredentials):
        return None
    return credentials.model_dump()