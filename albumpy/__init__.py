"""
AlbumPy - Async resumable photo-album uploads to Dropbox.

Usage:
    >>> from albumpy import AlbumUploader, APIConfig
    >>>
    >>> async with AlbumUploader(APIConfig.from_env()) as uploader:
    ...     files = await uploader.load_files(["01.jpg", "02.jpg"])
    ...     result = await uploader.upload_album("album-1", files, "/Orders/1001/album-01")
    ...     print(result.share_url)
"""
import logging
from .client import AlbumUploader, build_destination_root, token_source_from_config

# Configuration
from .core.api import (
    APIConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    RetryConfig,
    UploadConfig,
    DropboxWireClient,
    TransportClient
)

# Credentials
from .core.auth import (
    Credential,
    TokenProvider,
    StaticTokenSource,
    EndpointTokenSource,
    OAuthRefreshTokenSource
)

# Upload core
from .core.upload import (
    AdmissionQueue,
    BatchOrchestrator,
    BatchLayout,
    BatchProgress,
    BatchResult,
    CancellationToken,
    ResumableUploadEngine,
    UploadableFile
)

# Errors
from .core.exceptions import (
    AlbumPyException,
    AuthError,
    TransportError,
    CancelledError,
    LinkError
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for albumpy modules.

    This ensures that all albumpy loggers are properly configured
    to show log messages at the specified level.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'albumpy',
        'albumpy.client',
        'albumpy.auth',
        'albumpy.api.wire',
        'albumpy.api.retry',
        'albumpy.api.transport',
        'albumpy.upload.engine',
        'albumpy.upload.batch',
        'albumpy.upload.admission',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'AlbumUploader',
    'build_destination_root',
    'token_source_from_config',
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadConfig',
    'DropboxWireClient',
    'TransportClient',
    'Credential',
    'TokenProvider',
    'StaticTokenSource',
    'EndpointTokenSource',
    'OAuthRefreshTokenSource',
    'AdmissionQueue',
    'BatchOrchestrator',
    'BatchLayout',
    'BatchProgress',
    'BatchResult',
    'CancellationToken',
    'ResumableUploadEngine',
    'UploadableFile',
    'AlbumPyException',
    'AuthError',
    'TransportError',
    'CancelledError',
    'LinkError',
    'setup_logging',
]
