"""
Dropbox wire client.

Performs exactly one HTTP attempt per call. Retries, token refresh and
error tolerance live in ``TransportClient``.
"""
import asyncio
import json
import time
from typing import Any, Dict, Optional

import aiohttp

from .config import APIConfig
from .errors import error_summary
from ..exceptions import TransportError
from ..logging import get_logger


def commit_arg(path: str) -> Dict[str, Any]:
    """Commit info shared by single uploads and session finish."""
    return {
        'path': path,
        'mode': 'add',
        'autorename': True,
        'mute': False,
        'strict_conflict': False,
    }


def encode_api_arg(arg: Dict[str, Any]) -> str:
    """
    Encode a ``Dropbox-API-Arg`` header value.

    Compact separators; non-ASCII characters are escaped because HTTP
    header values must be ASCII.
    """
    return json.dumps(arg, separators=(',', ':'), ensure_ascii=True)


class DropboxWireClient:
    """
    Raw Dropbox HTTP calls.

    Reuses one aiohttp session for all requests (critical for chunk
    throughput).

    Responsibilities:
    - Build content-upload and RPC requests
    - Decode responses and error bodies
    - Turn any failure into TransportError
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize wire client.

        Args:
            config: API configuration (uses defaults if not provided)
            session: Optional shared session
        """
        self._config = config or APIConfig.default()
        self._session = session
        self._owns_session = False
        self._logger = get_logger('albumpy.api.wire')

    @property
    def config(self) -> APIConfig:
        return self._config

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(**self._config.get_connector_kwargs()),
                **self._config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    # Content endpoints

    async def upload(self, access_token: str, content: bytes, path: str) -> Dict[str, Any]:
        """Single-request upload (files/upload)."""
        return await self._content_request(access_token, 'files/upload', commit_arg(path), content)

    async def upload_session_start(self, access_token: str, chunk: bytes) -> str:
        """
        Open an upload session with its first chunk.

        Returns:
            Session id

        Raises:
            TransportError: If the response carries no session id
        """
        result = await self._content_request(
            access_token, 'files/upload_session/start', {'close': False}, chunk
        )
        session_id = result.get('session_id')
        if not session_id:
            raise TransportError("Upload session start returned no session_id", payload=result)
        return session_id

    async def upload_session_append(
        self,
        access_token: str,
        session_id: str,
        offset: int,
        chunk: bytes
    ) -> None:
        """Append ``chunk`` at ``offset`` (files/upload_session/append_v2)."""
        arg = {
            'cursor': {'session_id': session_id, 'offset': offset},
            'close': False,
        }
        await self._content_request(access_token, 'files/upload_session/append_v2', arg, chunk)

    async def upload_session_finish(
        self,
        access_token: str,
        session_id: str,
        offset: int,
        chunk: bytes,
        path: str
    ) -> Dict[str, Any]:
        """Append the last chunk and commit the file (files/upload_session/finish)."""
        arg = {
            'cursor': {'session_id': session_id, 'offset': offset},
            'commit': commit_arg(path),
        }
        return await self._content_request(access_token, 'files/upload_session/finish', arg, chunk)

    # RPC endpoints

    async def create_folder(self, access_token: str, path: str) -> Dict[str, Any]:
        return await self._api_request(
            access_token, 'files/create_folder_v2', {'path': path, 'autorename': False}
        )

    async def create_shared_link(self, access_token: str, path: str) -> Dict[str, Any]:
        return await self._api_request(
            access_token,
            'sharing/create_shared_link_with_settings',
            {'path': path, 'settings': {'requested_visibility': 'public'}}
        )

    async def list_shared_links(self, access_token: str, path: str) -> Dict[str, Any]:
        return await self._api_request(
            access_token, 'sharing/list_shared_links', {'path': path, 'direct_only': True}
        )

    # Plumbing

    async def _content_request(
        self,
        access_token: str,
        endpoint: str,
        arg: Dict[str, Any],
        body: bytes
    ) -> Dict[str, Any]:
        headers = {
            'Authorization': f'Bearer {access_token}',
            'Content-Type': 'application/octet-stream',
            'Dropbox-API-Arg': encode_api_arg(arg),
        }
        url = f"{self._config.content_base}/{endpoint}"
        return await self._post(endpoint, url, headers, body)

    async def _api_request(
        self,
        access_token: str,
        endpoint: str,
        body: Dict[str, Any]
    ) -> Dict[str, Any]:
        headers = {
            'Authorization': f'Bearer {access_token}',
            'Content-Type': 'application/json',
        }
        url = f"{self._config.api_base}/{endpoint}"
        return await self._post(endpoint, url, headers, json.dumps(body))

    async def _post(self, endpoint: str, url: str, headers: Dict[str, str], data) -> Dict[str, Any]:
        session = await self._get_session()
        size_kb = len(data) / 1024 if data else 0
        started = time.time()
        self._logger.debug(f"POST {endpoint} ({size_kb:.1f} KB)")

        try:
            async with session.post(
                url,
                data=data,
                headers=headers,
                proxy=self._config.proxy.to_aiohttp_proxy() if self._config.proxy else None
            ) as response:
                text = await response.text()
                payload = self._decode(text)
                elapsed = time.time() - started
                if response.status >= 400:
                    default = text.strip()[:200] or f"HTTP {response.status}"
                    summary = error_summary(payload, default)
                    self._logger.debug(f"{endpoint} -> HTTP {response.status} in {elapsed:.2f}s: {summary}")
                    raise TransportError(summary, response.status, payload)
                self._logger.debug(f"{endpoint} -> HTTP {response.status} in {elapsed:.2f}s")
                return payload if isinstance(payload, dict) else {}
        except asyncio.TimeoutError as e:
            elapsed = time.time() - started
            raise TransportError(f"timeout: {endpoint} after {elapsed:.2f}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"network error on {endpoint}: {e}") from e

    @staticmethod
    def _decode(text: str) -> Any:
        if not text:
            return {}
        try:
            return json.loads(text)
        except ValueError:
            return {}
