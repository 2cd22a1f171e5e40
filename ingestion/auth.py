"""
Request Authentication

Turns an Authentication config into outbound request headers.
"""

import base64
from typing import Callable, Optional

from pydantic import SecretStr

from core.errors import ConfigurationError
from schemas.extraction import Authentication, AuthType


def _require(value: Optional[SecretStr | str], field: str, auth_type: AuthType) -> str:
    if value is None:
        raise ConfigurationError(
            f"Authentication type '{auth_type.value}' requires '{field}'", field=field
        )
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    if not raw:
        raise ConfigurationError(
            f"Authentication type '{auth_type.value}' requires '{field}'", field=field
        )
    return raw


def _api_key_headers(auth: Authentication) -> dict[str, str]:
    key = _require(auth.key, "key", auth.type)
    return {auth.header_name or "X-API-Key": key}


def _bearer_headers(auth: Authentication) -> dict[str, str]:
    token = _require(auth.token, "token", auth.type)
    return {"Authorization": f"Bearer {token}"}


def _basic_headers(auth: Authentication) -> dict[str, str]:
    username = _require(auth.username, "username", auth.type)
    password = _require(auth.password, "password", auth.type)
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


AUTH_HEADER_BUILDERS: dict[AuthType, Callable[[Authentication], dict[str, str]]] = {
    AuthType.NONE: lambda auth: {},
    AuthType.API_KEY: _api_key_headers,
    AuthType.BEARER: _bearer_headers,
    AuthType.OAUTH: _bearer_headers,
    AuthType.BASIC: _basic_headers,
}


def apply_authentication(
    authentication: Authentication, headers: dict[str, str]
) -> dict[str, str]:
    """
    Merge credential headers into a copy of ``headers``.

    Credential headers replace caller headers with the same name,
    compared case-insensitively.

    Args:
        authentication: Credentials config
        headers: Caller-supplied headers (not modified)

    Returns:
        New header dict

    Raises:
        ConfigurationError: If a credential required by the type is missing
    """
    injected = AUTH_HEADER_BUILDERS[authentication.type](authentication)

    overridden = {name.lower() for name in injected}
    merged = {
        name: value
        for name, value in headers.items()
        if name.lower() not in overridden
    }
    merged.update(injected)
    return merged
