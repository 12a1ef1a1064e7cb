"""
Token sources.

Each source knows one way of obtaining a fresh credential: a pre-issued
token, a trusted backend endpoint, or the OAuth refresh-token exchange.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import aiohttp

from .credential import Credential
from ..exceptions import AuthError
from ..logging import get_logger

# Dropbox short-lived tokens last four hours
DEFAULT_EXPIRES_IN = 4 * 60 * 60


class TokenSource(ABC):
    """Abstract source of fresh credentials."""

    @abstractmethod
    async def fetch(self) -> Credential:
        """Obtain a new credential."""
        pass

    async def close(self) -> None:
        """Release resources (no-op by default)."""
        return None


class StaticTokenSource(TokenSource):
    """Returns a pre-issued token."""

    def __init__(self, token: str, expires_in: Optional[float] = None):
        if not token:
            raise ValueError("Access token must not be empty")
        self._token = token
        self._expires_in = expires_in

    async def fetch(self) -> Credential:
        return Credential.from_expires_in(self._token, self._expires_in)


class HttpTokenSource(TokenSource):
    """
    Base for sources that call an HTTP endpoint.

    Reuses one aiohttp session; creates its own if none is injected.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0
    ):
        self._session = session
        self._owns_session = False
        self._timeout = timeout
        self._logger = get_logger('albumpy.auth.source')

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close session if we own it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            data = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _credential_from(data: Dict[str, Any]) -> Credential:
        """Parse ``{token|access_token, expiresInSeconds|expires_in}``."""
        token = data.get('token') or data.get('access_token')
        if not token:
            raise AuthError("Token response contained no token")
        expires_in = data.get('expiresInSeconds', data.get('expires_in', DEFAULT_EXPIRES_IN))
        return Credential.from_expires_in(token, expires_in)


class EndpointTokenSource(HttpTokenSource):
    """
    Fetches a credential from a trusted backend.

    The endpoint answers ``GET`` with ``{"token": ..., "expiresInSeconds": ...}``
    (``access_token``/``expires_in`` are accepted too) or ``{"error": ...}``.
    """

    def __init__(self, url: str, **kwargs):
        super().__init__(**kwargs)
        self._url = url

    async def fetch(self) -> Credential:
        session = await self._get_session()
        self._logger.debug(f"Requesting access token from {self._url}")
        try:
            async with session.get(
                self._url,
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as response:
                data = await self._read_json(response)
                if response.status >= 400 or data.get('error'):
                    message = data.get('error') or f"HTTP {response.status}"
                    raise AuthError(f"Token endpoint error: {message}", response.status)
        except aiohttp.ClientError as e:
            raise AuthError(f"Token endpoint unreachable: {e}") from e
        return self._credential_from(data)


class OAuthRefreshTokenSource(HttpTokenSource):
    """
    Exchanges a long-lived refresh token for a short-lived access token.

    Performs the ``grant_type=refresh_token`` call against Dropbox's OAuth
    token endpoint. Only use this where the app secret can be kept private.
    """

    DEFAULT_TOKEN_URL = 'https://api.dropbox.com/oauth2/token'

    def __init__(
        self,
        app_key: str,
        app_secret: str,
        refresh_token: str,
        token_url: str = DEFAULT_TOKEN_URL,
        **kwargs
    ):
        super().__init__(**kwargs)
        if not (app_key and app_secret and refresh_token):
            raise ValueError("app_key, app_secret and refresh_token are required")
        self._app_key = app_key
        self._app_secret = app_secret
        self._refresh_token = refresh_token
        self._token_url = token_url

    async def fetch(self) -> Credential:
        session = await self._get_session()
        form = {
            'grant_type': 'refresh_token',
            'refresh_token': self._refresh_token,
            'client_id': self._app_key,
            'client_secret': self._app_secret,
        }
        self._logger.debug("Exchanging refresh token")
        try:
            async with session.post(
                self._token_url,
                data=form,
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as response:
                data = await self._read_json(response)
                if response.status >= 400:
                    message = (
                        data.get('error_description')
                        or data.get('error')
                        or 'Failed to refresh Dropbox token'
                    )
                    raise AuthError(message, response.status)
        except aiohttp.ClientError as e:
            raise AuthError(f"Failed to refresh Dropbox token: {e}") from e
        return self._credential_from(data)
