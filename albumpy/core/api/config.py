"""
API configuration module.

Provides comprehensive configuration for the Dropbox transport and the
upload engine. Open for extension through custom configurations.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple, Mapping
import os
import ssl


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Supports HTTP and HTTPS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy format."""
        if not self.url:
            return None

        if self.username and self.password:
            if '://' in self.url:
                protocol, rest = self.url.split('://', 1)
                return f"{protocol}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """SSL/TLS configuration."""
    verify: bool = True
    ca_file: Optional[str] = None

    def create_ssl_context(self):
        """Create SSL context from configuration (False disables verification)."""
        if not self.verify:
            return False

        context = ssl.create_default_context()
        if self.ca_file:
            context.load_verify_locations(self.ca_file)
        return context


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    Chunk uploads are large, so the total timeout is generous.
    """
    total: float = 300.0  # Total request timeout
    connect: float = 30.0  # Connection timeout
    sock_read: float = 120.0  # Socket read timeout

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Linear backoff: attempt ``n`` that fails transiently waits
    ``base_delay * n`` seconds before attempt ``n + 1``.
    """
    max_attempts: int = 5
    base_delay: float = 2.0
    transient_markers: Tuple[str, ...] = (
        'too_many_requests',
        'too_many_write_operations',
        'rate_limit',
        'timeout',
        'timed out',
    )
    transient_statuses: Tuple[int, ...] = (429,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")


@dataclass
class UploadConfig:
    """
    Upload engine and batch layout settings.

    Attributes:
        chunk_size: Bytes per chunk; files up to this size go in one request
        token_safety_margin: Seconds before expiry a credential stops being used
        files_folder: Subfolder of the album root that receives the photos
        extra_folders: Other fixed subfolders created for every album
    """
    chunk_size: int = 8 * 1024 * 1024
    token_safety_margin: float = 60.0
    files_folder: str = 'photos'
    extra_folders: Tuple[str, ...] = ('cover',)

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")


@dataclass
class APIConfig:
    """
    Complete API configuration.

    Centralizes all configuration options for the Dropbox transport.
    Follows Open/Closed principle - extend by creating new config classes.
    """
    # Hosts
    api_base: str = 'https://api.dropboxapi.com/2'
    content_base: str = 'https://content.dropboxapi.com/2'
    oauth_token_url: str = 'https://api.dropbox.com/oauth2/token'

    # User agent
    user_agent: str = 'albumpy/1.0.0'

    # Sub-configurations
    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    # Credentials (one of these is used by the token provider)
    access_token: Optional[str] = None
    token_endpoint: Optional[str] = None
    app_key: Optional[str] = None
    app_secret: Optional[str] = None
    refresh_token: Optional[str] = None

    # Additional headers
    extra_headers: Dict[str, str] = field(default_factory=dict)

    # Connection pool settings
    limit_per_host: int = 4
    limit: int = 20

    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **kwargs) -> 'APIConfig':
        """
        Create configuration from environment variables.

        Reads ALBUMPY_ACCESS_TOKEN, ALBUMPY_TOKEN_ENDPOINT, DROPBOX_APP_KEY,
        DROPBOX_APP_SECRET, DROPBOX_REFRESH_TOKEN and ALBUMPY_CHUNK_SIZE.
        Explicit keyword arguments win over the environment.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {
            'access_token': env.get('ALBUMPY_ACCESS_TOKEN') or None,
            'token_endpoint': env.get('ALBUMPY_TOKEN_ENDPOINT') or None,
            'app_key': env.get('DROPBOX_APP_KEY') or None,
            'app_secret': env.get('DROPBOX_APP_SECRET') or None,
            'refresh_token': env.get('DROPBOX_REFRESH_TOKEN') or None,
        }
        chunk_size = env.get('ALBUMPY_CHUNK_SIZE')
        if chunk_size:
            try:
                values['upload'] = UploadConfig(chunk_size=int(chunk_size))
            except ValueError as e:
                raise ValueError(f"Invalid ALBUMPY_CHUNK_SIZE: {chunk_size!r}") from e
        values.update(kwargs)
        return cls(**values)

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
            'ssl': self.ssl.create_ssl_context(),
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
