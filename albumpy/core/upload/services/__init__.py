"""Upload services module."""
from .file_service import FileValidator, AsyncFileReader
from .cancellation import CancellationToken

__all__ = [
    'FileValidator',
    'AsyncFileReader',
    'CancellationToken',
]
