"""Tests for credential header injection."""

import base64

import pytest

from core.errors import ConfigurationError
from ingestion.auth import apply_authentication
from schemas.extraction import Authentication, AuthType


@pytest.mark.unit
class TestApplyAuthentication:
    def test_none_leaves_headers_untouched(self):
        headers = {"Accept": "application/json"}
        result = apply_authentication(Authentication(), headers)
        assert result == {"Accept": "application/json"}

    def test_api_key_uses_default_header(self):
        auth = Authentication(type=AuthType.API_KEY, key="secret-key")
        assert apply_authentication(auth, {}) == {"X-API-Key": "secret-key"}

    def test_api_key_uses_custom_header(self):
        auth = Authentication(type=AuthType.API_KEY, key="k", header_name="X-Token")
        assert apply_authentication(auth, {}) == {"X-Token": "k"}

    @pytest.mark.parametrize("auth_type", [AuthType.BEARER, AuthType.OAUTH])
    def test_bearer_and_oauth(self, auth_type):
        auth = Authentication(type=auth_type, token="abc123")
        assert apply_authentication(auth, {}) == {"Authorization": "Bearer abc123"}

    def test_basic_encodes_credentials(self):
        auth = Authentication(type=AuthType.BASIC, username="alice", password="s3cret")
        expected = base64.b64encode(b"alice:s3cret").decode("ascii")
        assert apply_authentication(auth, {}) == {"Authorization": f"Basic {expected}"}

    def test_credentials_win_over_caller_headers(self):
        auth = Authentication(type=AuthType.BEARER, token="real")
        headers = {"authorization": "Bearer stale", "Accept": "text/csv"}

        result = apply_authentication(auth, headers)

        assert result == {"Accept": "text/csv", "Authorization": "Bearer real"}

    def test_input_headers_not_mutated(self):
        headers = {"Accept": "text/csv"}
        apply_authentication(Authentication(type=AuthType.BEARER, token="t"), headers)
        assert headers == {"Accept": "text/csv"}

    @pytest.mark.parametrize(
        "auth, field",
        [
            (Authentication(type=AuthType.API_KEY), "key"),
            (Authentication(type=AuthType.BEARER), "token"),
            (Authentication(type=AuthType.OAUTH, token=""), "token"),
            (Authentication(type=AuthType.BASIC, password="p"), "username"),
            (Authentication(type=AuthType.BASIC, username="u"), "password"),
        ],
    )
    def test_missing_credential_is_configuration_error(self, auth, field):
        with pytest.raises(ConfigurationError) as exc_info:
            apply_authentication(auth, {})
        assert exc_info.value.field == field
