"""Dropbox transport: configuration, wire client and retrying transport."""
from .config import APIConfig, ProxyConfig, SSLConfig, TimeoutConfig, RetryConfig, UploadConfig
from .errors import ErrorClass, ErrorClassifier
from .events import EventEmitter
from .retry import RetryStrategy, LinearBackoffStrategy, RetryExecutor
from .wire_client import DropboxWireClient
from .transport import TransportClient

__all__ = [
    # Configuration
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadConfig',

    # Errors
    'ErrorClass',
    'ErrorClassifier',

    # Retry
    'RetryStrategy',
    'LinearBackoffStrategy',
    'RetryExecutor',

    # Clients
    'DropboxWireClient',
    'TransportClient',

    # Events
    'EventEmitter',
]
