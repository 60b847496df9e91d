"""Short-lived access tokens for reading supporting images from storage."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

import google.auth
from google.auth.transport.requests import Request

from src.utils.exceptions import TokenAcquisitionError

logger = logging.getLogger(__name__)

CredentialsLoader = Callable[[Sequence[str]], Any]


def _load_default_credentials(scopes: Sequence[str]):
    credentials, _project = google.auth.default(scopes=list(scopes))
    return credentials


class GoogleCredentialTokenIssuer:
    """Issue OAuth access tokens from the application-default Google credentials."""

    def __init__(
        self,
        *,
        credentials_loader: CredentialsLoader | None = None,
        request_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._credentials_loader = credentials_loader or _load_default_credentials
        self._request_factory = request_factory or Request

    def get_token(self, scopes: Sequence[str]) -> str:
        """Refresh credentials for ``scopes`` and return the bearer token."""

        if not scopes:
            raise TokenAcquisitionError("At least one token scope is required.")

        try:
            credentials = self._credentials_loader(scopes)
            credentials.refresh(self._request_factory())
        except Exception as exc:
            raise TokenAcquisitionError("Failed to get token") from exc

        token = getattr(credentials, "token", None)
        if not isinstance(token, str) or not token:
            raise TokenAcquisitionError("Failed to get token")

        logger.debug("Issued access token for scopes %s", ", ".join(scopes))
        return token
