"""
Transport client.

Retrying decorator around ``DropboxWireClient``: every wire operation runs
through one ``RetryExecutor`` so the retry policy is defined once.
"""
from typing import Optional

from .config import APIConfig
from .errors import ErrorClassifier, is_conflict, is_link_already_exists
from .retry import LinearBackoffStrategy, RetryExecutor, RetryStrategy
from .wire_client import DropboxWireClient
from ..exceptions import TransportError
from ..logging import get_logger
from ..upload.models import ServerFileMetadata, UploadableFile
from ..upload.protocols import TokenProviderProtocol


class TransportClient:
    """
    Wire operations with uniform retry/backoff semantics.

    Example:
        >>> transport = TransportClient(DropboxWireClient(config), tokens, config)
        >>> await transport.create_folder('/Orders/1001')
        >>> meta = await transport.upload_whole(file, '/Orders/1001/photos/01_a.jpg')
    """

    def __init__(
        self,
        wire: DropboxWireClient,
        token_provider: TokenProviderProtocol,
        config: Optional[APIConfig] = None,
        strategy: Optional[RetryStrategy] = None
    ):
        """
        Initialize transport client.

        Args:
            wire: Single-attempt wire client
            token_provider: Source of bearer credentials
            config: API configuration (retry settings are read from it)
            strategy: Optional retry strategy overriding the configured one
        """
        self._wire = wire
        self._config = config or APIConfig.default()
        retry = self._config.retry
        classifier = ErrorClassifier(retry.transient_markers, retry.transient_statuses)
        self._retry = RetryExecutor(
            token_provider,
            classifier,
            strategy or LinearBackoffStrategy(retry.max_attempts, retry.base_delay)
        )
        self._logger = get_logger('albumpy.api.transport')

    @property
    def retry(self) -> RetryExecutor:
        return self._retry

    async def upload_whole(
        self,
        file: UploadableFile,
        destination_path: str,
        cancellation=None
    ) -> ServerFileMetadata:
        """Upload a file that fits in one request."""
        result = await self._retry.execute(
            lambda token: self._wire.upload(token, file.content, destination_path),
            'files/upload',
            cancellation
        )
        return ServerFileMetadata.from_dict(result)

    async def start_session(self, first_chunk: bytes, cancellation=None) -> str:
        """Upload the first chunk and open a session; returns the session id."""
        return await self._retry.execute(
            lambda token: self._wire.upload_session_start(token, first_chunk),
            'upload_session/start',
            cancellation
        )

    async def append_chunk(
        self,
        session_id: str,
        offset: int,
        chunk: bytes,
        cancellation=None
    ) -> None:
        """Append ``chunk`` at ``offset``."""
        await self._retry.execute(
            lambda token: self._wire.upload_session_append(token, session_id, offset, chunk),
            f'upload_session/append@{offset}',
            cancellation
        )

    async def finish_session(
        self,
        session_id: str,
        offset: int,
        last_chunk: bytes,
        destination_path: str,
        cancellation=None
    ) -> ServerFileMetadata:
        """Append the final chunk and commit the file at ``destination_path``."""
        result = await self._retry.execute(
            lambda token: self._wire.upload_session_finish(
                token, session_id, offset, last_chunk, destination_path
            ),
            f'upload_session/finish@{offset}',
            cancellation
        )
        return ServerFileMetadata.from_dict(result)

    async def create_folder(self, path: str, cancellation=None) -> None:
        """
        Create a folder; an existing folder counts as success.

        Raises:
            TransportError: For any error other than a path conflict
        """
        try:
            await self._retry.execute(
                lambda token: self._wire.create_folder(token, path),
                'create_folder',
                cancellation
            )
            self._logger.debug(f"Folder created: {path}")
        except TransportError as e:
            if not is_conflict(e):
                raise
            self._logger.debug(f"Folder already exists: {path}")

    async def create_or_fetch_share_link(self, path: str, cancellation=None) -> Optional[str]:
        """
        Create a public link for ``path`` or return an existing one.

        Returns:
            Link URL, or None if the backend has no link to offer
        """
        try:
            result = await self._retry.execute(
                lambda token: self._wire.create_shared_link(token, path),
                'create_shared_link',
                cancellation
            )
            url = result.get('url')
            if url:
                return url
        except TransportError as e:
            if not is_link_already_exists(e):
                raise
            self._logger.debug(f"Shared link already exists for {path}")

        existing = await self._retry.execute(
            lambda token: self._wire.list_shared_links(token, path),
            'list_shared_links',
            cancellation
        )
        links = existing.get('links') or []
        if links and links[0].get('url'):
            return links[0]['url']
        return None

    async def close(self) -> None:
        await self._wire.close()
