"""
Upload module for album uploads.

Resumable single-file engine, per-album batch orchestrator and the
process-wide admission queue that serializes albums.
"""
from .engine import ResumableUploadEngine
from .orchestrator import BatchOrchestrator, BatchLayout, sequenced_name
from .admission import AdmissionQueue
from .models import (
    UploadableFile,
    ChunkInfo,
    ChunkSession,
    ServerFileMetadata,
    BatchProgress,
    BatchResult,
    QueueEntry
)
from .services import CancellationToken, AsyncFileReader, FileValidator
from .strategies import FixedSizeChunkingStrategy

__all__ = [
    # Main classes
    'ResumableUploadEngine',
    'BatchOrchestrator',
    'BatchLayout',
    'AdmissionQueue',
    'CancellationToken',
    'AsyncFileReader',
    'FileValidator',
    'FixedSizeChunkingStrategy',
    'sequenced_name',

    # Models
    'UploadableFile',
    'ChunkInfo',
    'ChunkSession',
    'ServerFileMetadata',
    'BatchProgress',
    'BatchResult',
    'QueueEntry',
]
