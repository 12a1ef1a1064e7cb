"""
AlbumUploader - main entry point.

Wires the token provider, transport, engine, orchestrator and admission
queue for one process and exposes album-level upload and cancel.
"""
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import aiohttp

from .core.api import APIConfig, DropboxWireClient, TransportClient
from .core.auth import (
    EndpointTokenSource,
    OAuthRefreshTokenSource,
    StaticTokenSource,
    TokenProvider,
    TokenSource
)
from .core.exceptions import AuthError, CancelledError
from .core.logging import get_logger
from .core.upload import (
    AdmissionQueue,
    AsyncFileReader,
    BatchLayout,
    BatchOrchestrator,
    BatchProgress,
    BatchResult,
    CancellationToken,
    FixedSizeChunkingStrategy,
    ResumableUploadEngine,
    UploadableFile
)

logger = get_logger('albumpy.client')

StatusCallback = Callable[[str, str], None]
ProgressCallback = Callable[[str, BatchProgress], None]

# Status values passed to on_status
STATUS_QUEUED = 'queued'
STATUS_START = 'start'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'
STATUS_FAILED = 'failed'


def token_source_from_config(
    config: APIConfig,
    session: Optional[aiohttp.ClientSession] = None
) -> TokenSource:
    """
    Pick a token source from configuration.

    Precedence: static access token, trusted endpoint, OAuth refresh token.

    Raises:
        AuthError: If no credential source is configured
    """
    if config.access_token:
        return StaticTokenSource(config.access_token)
    if config.token_endpoint:
        return EndpointTokenSource(config.token_endpoint, session=session)
    if config.app_key and config.app_secret and config.refresh_token:
        return OAuthRefreshTokenSource(
            config.app_key,
            config.app_secret,
            config.refresh_token,
            token_url=config.oauth_token_url,
            session=session
        )
    raise AuthError(
        "No Dropbox credentials configured. Set ALBUMPY_ACCESS_TOKEN, "
        "ALBUMPY_TOKEN_ENDPOINT or DROPBOX_APP_KEY/DROPBOX_APP_SECRET/DROPBOX_REFRESH_TOKEN."
    )


def build_destination_root(
    base: str,
    order_id: str,
    album_index: int,
    when: Optional[datetime] = None
) -> str:
    """
    Folder path for one album of an order.

    Example:
        >>> build_destination_root('/Orders', 'Jane Doe', 1, datetime(2024, 5, 1, 9, 30))
        '/Orders/2024-05-01_0930_Jane-Doe/album-01'
    """
    when = when or datetime.now()
    slug = re.sub(r'[^A-Za-z0-9_-]+', '-', order_id).strip('-') or 'order'
    return f"{base.rstrip('/')}/{when:%Y-%m-%d_%H%M}_{slug}/album-{album_index:02d}"


class AlbumUploader:
    """
    Album upload client.

    One instance per process: it owns the shared credential cache and the
    admission queue, so only one album uploads at a time.

    Example:
        >>> async with AlbumUploader(APIConfig.from_env()) as uploader:
        ...     files = await uploader.load_files(['a.jpg', 'b.jpg'])
        ...     result = await uploader.upload_album('album-1', files, '/Orders/1001/album-01')
        ...     print(result.share_url)
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[TransportClient] = None,
        admission: Optional[AdmissionQueue] = None,
        layout: Optional[BatchLayout] = None
    ):
        """
        Initialize the uploader.

        Args:
            config: API configuration (APIConfig.default() if omitted)
            token_provider: Shared credential cache (built from config if omitted)
            transport: Retrying transport (built from config if omitted)
            admission: Shared admission queue (a new one if omitted)
            layout: Album folder layout (from config if omitted)
        """
        self._config = config or APIConfig.default()
        self._owns_clients = transport is None

        if token_provider is None and transport is None:
            token_provider = TokenProvider(
                token_source_from_config(self._config),
                safety_margin=self._config.upload.token_safety_margin
            )
        self._tokens = token_provider

        if transport is None:
            self._wire = DropboxWireClient(self._config)
            transport = TransportClient(self._wire, token_provider, self._config)
        else:
            self._wire = None
        self._transport = transport

        self._admission = admission or AdmissionQueue()
        self._engine = ResumableUploadEngine(
            transport,
            FixedSizeChunkingStrategy(self._config.upload.chunk_size)
        )
        self._orchestrator = BatchOrchestrator(
            transport,
            self._engine,
            layout or BatchLayout(
                files_folder=self._config.upload.files_folder,
                extra_folders=tuple(self._config.upload.extra_folders)
            )
        )
        self._reader = AsyncFileReader()
        self._cancellations: Dict[str, CancellationToken] = {}
        self._progress: Dict[str, BatchProgress] = {}

    async def __aenter__(self) -> 'AlbumUploader':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def admission(self) -> AdmissionQueue:
        return self._admission

    @property
    def transport(self) -> TransportClient:
        return self._transport

    def progress(self, unit_id: str) -> Optional[BatchProgress]:
        """Latest progress for ``unit_id`` (read-only use)."""
        return self._progress.get(unit_id)

    def is_running(self, unit_id: str) -> bool:
        """True while ``unit_id`` is queued or uploading."""
        return unit_id in self._cancellations

    async def load_files(self, paths: Iterable[Union[str, Path]]) -> List[UploadableFile]:
        """Load files from disk, preserving the given order."""
        return await self._reader.load_many(paths)

    async def upload_album(
        self,
        unit_id: str,
        files: Sequence[UploadableFile],
        destination_root: str,
        on_progress: Optional[ProgressCallback] = None,
        on_status: Optional[StatusCallback] = None
    ) -> BatchResult:
        """
        Queue and upload one album.

        Waits for the admission slot, runs the batch and always releases the
        slot afterwards. Calling again after a failure or cancellation
        re-enters the queue at the tail.

        Args:
            unit_id: Album unit id (unique among running albums)
            files: Files in the user's order
            destination_root: Album folder path on the backend
            on_progress: Called with (unit_id, BatchProgress)
            on_status: Called with (unit_id, status) for queued/start/
                completed/cancelled/failed

        Returns:
            BatchResult with share link and file count

        Raises:
            ValueError: If ``unit_id`` is already running or ``files`` is empty
            AuthError, TransportError, LinkError: On failure
            CancelledError: If cancelled via cancel()
        """
        if unit_id in self._cancellations:
            raise ValueError(f"Album {unit_id} is already uploading")
        if not files:
            raise ValueError("Cannot upload an album without files")

        def notify(status: str) -> None:
            if on_status:
                on_status(unit_id, status)

        cancellation = CancellationToken()
        self._cancellations[unit_id] = cancellation
        progress = BatchProgress(unit_id=unit_id)
        self._progress[unit_id] = progress
        acquired = False

        try:
            await self._admission.acquire(
                unit_id,
                cancellation,
                on_queued=lambda unit, position: notify(STATUS_QUEUED)
            )
            acquired = True
            notify(STATUS_START)

            result = await self._orchestrator.run_batch(
                unit_id,
                files,
                destination_root,
                on_progress=on_progress,
                cancellation=cancellation,
                progress=progress
            )
            notify(STATUS_COMPLETED)
            return result
        except CancelledError:
            logger.info(f"Album {unit_id} cancelled")
            notify(STATUS_CANCELLED)
            raise
        except Exception as e:
            logger.error(f"Album {unit_id} failed: {e}")
            notify(STATUS_FAILED)
            raise
        finally:
            self._cancellations.pop(unit_id, None)
            if acquired:
                self._admission.release_slot(unit_id)

    def cancel(self, unit_id: str) -> bool:
        """
        Cancel a queued or running album.

        Idempotent: cancelling twice, or cancelling an album that already
        finished, has no further effect.

        Returns:
            True if a running album was cancelled by this call
        """
        cancellation = self._cancellations.get(unit_id)
        if cancellation is None:
            return False
        cancelled = cancellation.cancel()
        if cancelled:
            logger.info(f"Cancellation requested for album {unit_id}")
        return cancelled

    def cancel_all(self) -> int:
        """Cancel every queued or running album; returns how many were cancelled."""
        return sum(1 for unit_id in list(self._cancellations) if self.cancel(unit_id))

    async def share_link(self, path: str) -> Optional[str]:
        """Create or fetch a public link for ``path``."""
        return await self._transport.create_or_fetch_share_link(path)

    async def close(self) -> None:
        """Release HTTP resources owned by this uploader."""
        self.cancel_all()
        if self._owns_clients:
            await self._transport.close()
            if self._tokens is not None:
                await self._tokens.close()
