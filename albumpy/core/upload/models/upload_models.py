"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import time


@dataclass(frozen=True)
class UploadableFile:
    """
    A file admitted into an upload.

    Immutable: the engine reads ``content`` but never modifies it.

    Attributes:
        name: Original file name
        byte_length: Size in bytes (must match len(content))
        mime_type: MIME type reported by the selector
        content: Raw file bytes
    """
    name: str
    byte_length: int
    mime_type: str
    content: bytes = field(repr=False)

    def __post_init__(self):
        if self.byte_length != len(self.content):
            raise ValueError(
                f"byte_length {self.byte_length} does not match content size {len(self.content)} for {self.name}"
            )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        content: bytes,
        mime_type: str = 'application/octet-stream'
    ) -> 'UploadableFile':
        """Create from in-memory bytes."""
        return cls(name=name, byte_length=len(content), mime_type=mime_type, content=content)

    def slice(self, start: int, end: int) -> bytes:
        """Returns bytes [start, end)."""
        return self.content[start:end]


@dataclass(frozen=True)
class ChunkInfo:
    """
    Information about a file chunk.

    Attributes:
        index: Chunk index
        start: Start position in bytes
        end: End position in bytes
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start


@dataclass
class ChunkSession:
    """
    Transient state of one chunked upload session.

    ``committed_offset`` only moves forward, and only after the server has
    acknowledged the chunk ending at the new offset.
    """
    session_id: str
    committed_offset: int
    total_size: int

    def acknowledge(self, end: int) -> None:
        """
        Record that the server accepted bytes up to ``end``.

        Raises:
            ValueError: If ``end`` would move the offset backwards or past the file
        """
        if end <= self.committed_offset or end > self.total_size:
            raise ValueError(
                f"Invalid acknowledged offset {end} (committed {self.committed_offset}, total {self.total_size})"
            )
        self.committed_offset = end

    @property
    def is_complete(self) -> bool:
        return self.committed_offset == self.total_size


@dataclass(frozen=True)
class ServerFileMetadata:
    """
    Metadata of a file committed on the backend.

    Attributes:
        name: Final name (may differ from the request after autorename)
        path_display: Full path as displayed by the backend
        id: Backend file id
        size: Size in bytes
        rev: Revision id
        raw: Raw API response
    """
    name: str
    path_display: str
    id: str = ''
    size: int = 0
    rev: str = ''
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerFileMetadata':
        """Create from a Dropbox FileMetadata response."""
        return cls(
            name=data.get('name', ''),
            path_display=data.get('path_display', data.get('path_lower', '')),
            id=data.get('id', ''),
            size=int(data.get('size', 0) or 0),
            rev=data.get('rev', ''),
            raw=dict(data)
        )


@dataclass
class BatchProgress:
    """
    Aggregate progress of one album batch.

    Attributes:
        unit_id: Album unit id
        files_completed: Files fully uploaded
        total_files: Files in the batch
        bytes_uploaded: Bytes acknowledged across the whole batch
        total_bytes: Sum of all file sizes
    """
    unit_id: str
    files_completed: int = 0
    total_files: int = 0
    bytes_uploaded: int = 0
    total_bytes: int = 0

    def reset(self, total_files: int, total_bytes: int) -> None:
        """Zero the counters for a new run."""
        self.files_completed = 0
        self.total_files = total_files
        self.bytes_uploaded = 0
        self.total_bytes = total_bytes

    @property
    def percentage(self) -> float:
        """Returns byte progress as percentage."""
        if self.total_bytes == 0:
            return 100.0 if self.total_files and self.files_completed >= self.total_files else 0.0
        return (self.bytes_uploaded / self.total_bytes) * 100

    @property
    def is_complete(self) -> bool:
        return self.total_files > 0 and self.files_completed >= self.total_files

    def to_dict(self) -> Dict[str, int]:
        """Shape reported to UI layers."""
        return {
            'currentFiles': self.files_completed,
            'totalFiles': self.total_files,
            'uploadedBytes': self.bytes_uploaded,
            'totalBytes': self.total_bytes,
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Result of a successful album batch.

    Attributes:
        share_url: Public link to the album folder
        file_count: Number of files uploaded
        uploaded: Metadata for each uploaded file, in upload order
    """
    share_url: str
    file_count: int
    uploaded: List[ServerFileMetadata] = field(default_factory=list)


@dataclass(frozen=True)
class QueueEntry:
    """A unit waiting for the admission slot."""
    unit_id: str
    enqueued_at: float = field(default_factory=time.time)
