"""Tests for the Google credential token issuer."""

from types import SimpleNamespace
from unittest import mock

import pytest

from src.components.token_issuer import GoogleCredentialTokenIssuer
from src.utils.exceptions import TokenAcquisitionError

SCOPE = "https://www.googleapis.com/auth/devstorage.read_only"


class FakeCredentials:
    def __init__(self, token="ya29.token") -> None:
        self.token = None
        self._next_token = token
        self.refreshed_with = None

    def refresh(self, request) -> None:
        self.refreshed_with = request
        self.token = self._next_token


def test_get_token_refreshes_credentials():
    credentials = FakeCredentials()
    loader_calls = []
    request = object()

    def loader(scopes):
        loader_calls.append(list(scopes))
        return credentials

    issuer = GoogleCredentialTokenIssuer(credentials_loader=loader, request_factory=lambda: request)

    assert issuer.get_token([SCOPE]) == "ya29.token"
    assert loader_calls == [[SCOPE]]
    assert credentials.refreshed_with is request


def test_default_loader_uses_application_default_credentials():
    credentials = FakeCredentials()

    with mock.patch("google.auth.default", return_value=(credentials, "project")) as mock_default:
        issuer = GoogleCredentialTokenIssuer(request_factory=lambda: None)
        token = issuer.get_token([SCOPE])

    mock_default.assert_called_once_with(scopes=[SCOPE])
    assert token == "ya29.token"


def test_refresh_failure_raises():
    def failing_refresh(_request):
        raise RuntimeError("no credentials")

    credentials = SimpleNamespace(token=None, refresh=failing_refresh)
    issuer = GoogleCredentialTokenIssuer(credentials_loader=lambda _: credentials, request_factory=lambda: None)

    with pytest.raises(TokenAcquisitionError):
        issuer.get_token([SCOPE])


def test_missing_token_raises():
    issuer = GoogleCredentialTokenIssuer(
        credentials_loader=lambda _: FakeCredentials(token=None), request_factory=lambda: None
    )

    with pytest.raises(TokenAcquisitionError):
        issuer.get_token([SCOPE])


def test_scopes_are_required():
    issuer = GoogleCredentialTokenIssuer(credentials_loader=lambda _: FakeCredentials(), request_factory=lambda: None)

    with pytest.raises(TokenAcquisitionError):
        issuer.get_token([])
