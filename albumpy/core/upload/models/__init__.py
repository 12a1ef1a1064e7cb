"""Upload models."""
from .upload_models import (
    UploadableFile,
    ChunkInfo,
    ChunkSession,
    ServerFileMetadata,
    BatchProgress,
    BatchResult,
    QueueEntry
)

__all__ = [
    'UploadableFile',
    'ChunkInfo',
    'ChunkSession',
    'ServerFileMetadata',
    'BatchProgress',
    'BatchResult',
    'QueueEntry'
]
