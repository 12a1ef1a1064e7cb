"""Credential management."""
from .credential import Credential
from .token_provider import TokenProvider
from .token_sources import (
    TokenSource,
    StaticTokenSource,
    EndpointTokenSource,
    OAuthRefreshTokenSource
)

__all__ = [
    'Credential',
    'TokenProvider',
    'TokenSource',
    'StaticTokenSource',
    'EndpointTokenSource',
    'OAuthRefreshTokenSource',
]
