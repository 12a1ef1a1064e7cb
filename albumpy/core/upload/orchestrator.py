"""
Batch orchestrator.

Uploads one album: provisions its folders, uploads its files in the
caller's order and produces a share link for the album folder.
"""
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import BatchProgress, BatchResult, ServerFileMetadata, UploadableFile
from .protocols import BatchProgressCallback, FileUploaderProtocol, FolderTransportProtocol
from .services import CancellationToken
from ..exceptions import LinkError
from ..logging import get_logger

logger = get_logger('albumpy.upload.batch')


@dataclass(frozen=True)
class BatchLayout:
    """
    Folder layout created under every album root.

    Attributes:
        files_folder: Subfolder receiving the photos ('' for the root itself)
        extra_folders: Other fixed subfolders created alongside it
    """
    files_folder: str = 'photos'
    extra_folders: Tuple[str, ...] = ('cover',)

    def folders(self, root: str) -> List[str]:
        """Root first, then its subfolders."""
        root = root.rstrip('/')
        paths = [root]
        for name in (self.files_folder, *self.extra_folders):
            if name:
                paths.append(f"{root}/{name}")
        return paths

    def files_path(self, root: str) -> str:
        root = root.rstrip('/')
        return f"{root}/{self.files_folder}" if self.files_folder else root


def sequence_width(count: int) -> int:
    """Digits used for sequence numbers: at least two."""
    return max(2, len(str(count)))


def sequenced_name(index: int, count: int, name: str) -> str:
    """
    Name a file by its position in the user's order.

    Example:
        >>> sequenced_name(3, 12, 'beach.jpg')
        '03_beach.jpg'
    """
    safe = name.replace('/', '_').replace('\\', '_').strip() or 'file'
    return f"{index:0{sequence_width(count)}d}_{safe}"


class BatchOrchestrator:
    """
    Runs one album batch.

    Files are uploaded one at a time, in order, so progress is monotonic and
    the sequence numbers match the order the user chose. Nothing is rolled
    back on failure; provisioning is idempotent, so running again is safe.
    """

    def __init__(
        self,
        transport: FolderTransportProtocol,
        uploader: FileUploaderProtocol,
        layout: Optional[BatchLayout] = None
    ):
        """
        Initialize batch orchestrator.

        Args:
            transport: Folder and share-link operations
            uploader: Single-file uploader (the resumable engine)
            layout: Folder layout (photos + cover by default)
        """
        self._transport = transport
        self._uploader = uploader
        self._layout = layout or BatchLayout()

    @property
    def layout(self) -> BatchLayout:
        return self._layout

    async def run_batch(
        self,
        unit_id: str,
        files: Sequence[UploadableFile],
        destination_root: str,
        on_progress: Optional[BatchProgressCallback] = None,
        cancellation: Optional[CancellationToken] = None,
        progress: Optional[BatchProgress] = None
    ) -> BatchResult:
        """
        Upload an album.

        Args:
            unit_id: Album unit id
            files: Files in the user's order
            destination_root: Album folder path on the backend
            on_progress: Called with (unit_id, BatchProgress) after every change
            cancellation: Token checked between every step
            progress: Optional progress object to update (reset first)

        Returns:
            BatchResult with the share link and file count

        Raises:
            ValueError: If ``files`` is empty
            TransportError: If a wire operation fails terminally
            LinkError: If no share link could be obtained
            CancelledError: If cancelled
        """
        if not files:
            raise ValueError("Cannot run an empty batch")

        cancellation = cancellation or CancellationToken()
        progress = progress or BatchProgress(unit_id=unit_id)
        progress.reset(len(files), sum(f.byte_length for f in files))
        self._emit(on_progress, unit_id, progress)

        started = time.time()
        logger.info(
            f"[{unit_id}] Starting batch: {len(files)} files, "
            f"{progress.total_bytes / (1024 * 1024):.2f} MB -> {destination_root}"
        )

        for folder in self._layout.folders(destination_root):
            cancellation.raise_if_cancelled()
            await self._transport.create_folder(folder, cancellation)

        target = self._layout.files_path(destination_root)
        uploaded: List[ServerFileMetadata] = []
        completed_bytes = 0

        for index, file in enumerate(files, start=1):
            cancellation.raise_if_cancelled()
            path = f"{target}/{sequenced_name(index, len(files), file.name)}"

            def on_bytes(done: int, total: int, base: int = completed_bytes) -> None:
                progress.bytes_uploaded = base + done
                self._emit(on_progress, unit_id, progress)

            logger.debug(f"[{unit_id}] File {index}/{len(files)}: {file.name} -> {path}")
            result = await self._uploader.upload(file, path, on_bytes, cancellation)
            uploaded.append(result)

            completed_bytes += file.byte_length
            progress.files_completed = index
            progress.bytes_uploaded = completed_bytes
            self._emit(on_progress, unit_id, progress)

        cancellation.raise_if_cancelled()
        share_url = await self._transport.create_or_fetch_share_link(destination_root, cancellation)
        if not share_url:
            logger.error(f"[{unit_id}] No share link for {destination_root}")
            raise LinkError(f"Files uploaded but no share link could be created for {destination_root}")

        elapsed = time.time() - started
        logger.info(f"[{unit_id}] Batch complete: {len(files)} files in {elapsed:.2f}s")
        return BatchResult(share_url=share_url, file_count=len(files), uploaded=uploaded)

    @staticmethod
    def _emit(callback: Optional[BatchProgressCallback], unit_id: str, progress: BatchProgress) -> None:
        if callback:
            callback(unit_id, progress)
