"""Tests for elysian/session/state.py."""

import pytest
from google.genai import errors as genai_errors

from elysian.errors import CapabilityUnavailable, CredentialMissing, EmptyCompletion, ProviderTimeout
from elysian.session import ErrorKind, classify_error
from elysian.session.state import CONNECTION_MESSAGE, CREDENTIAL_MESSAGE, is_auth_error


def _client_error(code, message, status="INVALID_ARGUMENT"):
    return genai_errors.ClientError(code, {"error": {"code": code, "message": message, "status": status}})


class TestIsAuthError:
    def test_invalid_key_message(self):
        assert is_auth_error(_client_error(400, "API key not valid. Please pass a valid API key."))

    @pytest.mark.parametrize("code", [401, 403])
    def test_auth_status_codes(self, code):
        assert is_auth_error(_client_error(code, "denied", "PERMISSION_DENIED"))

    def test_other_client_error(self):
        assert not is_auth_error(_client_error(400, "Request contains an invalid argument."))

    def test_server_error(self):
        error = genai_errors.ServerError(500, {"error": {"code": 500, "message": "invalid api key", "status": "INTERNAL"}})
        assert not is_auth_error(error)


class TestClassifyError:
    def test_credential_missing(self):
        error = classify_error(CredentialMissing())
        assert error.kind == ErrorKind.CREDENTIAL_MISSING
        assert error.message == CREDENTIAL_MESSAGE
        assert error.needs_credentials

    def test_rejected_key(self):
        assert classify_error(_client_error(403, "denied")).kind == ErrorKind.CREDENTIAL_MISSING

    def test_timeout(self):
        assert classify_error(ProviderTimeout(30)).kind == ErrorKind.PROVIDER_TIMEOUT

    def test_empty_completion(self):
        error = classify_error(EmptyCompletion("blank"))
        assert error.kind == ErrorKind.EMPTY_COMPLETION
        assert not error.needs_credentials

    def test_capability(self):
        error = classify_error(CapabilityUnavailable("no mic"))
        assert error.kind == ErrorKind.CAPABILITY_UNAVAILABLE
        assert error.message == "no mic"

    @pytest.mark.parametrize("exc", [
        ConnectionError("reset"),
        _client_error(429, "quota", "RESOURCE_EXHAUSTED"),
        ValueError("anything"),
    ])
    def test_everything_else_is_generic(self, exc):
        error = classify_error(exc)
        assert error.kind == ErrorKind.PROVIDER_ERROR
        assert error.message == CONNECTION_MESSAGE
