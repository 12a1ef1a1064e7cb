"""
Custom exceptions for album upload operations.

This module defines the error taxonomy surfaced to callers of the upload core.
"""
from typing import Optional, Any, Dict


class AlbumPyException(Exception):
    """Base exception for all albumpy errors."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Numeric error code (HTTP status, if available)
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class AuthError(AlbumPyException):
    """Raised when a credential could not be obtained or refreshed."""
    pass


class TransportError(AlbumPyException):
    """
    Raised for wire-level failures once retries are exhausted.

    The message is the backend's error summary (for Dropbox, ``error_summary``)
    so it can be shown to the user as-is.
    """

    def __init__(
        self,
        summary: str,
        status: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
        attempts: int = 1
    ) -> None:
        """
        Initialize the exception.

        Args:
            summary: Backend error summary text
            status: HTTP status code (None for client-side failures)
            payload: Decoded error body, if any
            attempts: Number of attempts made before giving up
        """
        self.summary = summary
        self.status = status
        self.payload = payload or {}
        self.attempts = attempts
        super().__init__(summary, status)

    @property
    def correct_offset(self) -> Optional[int]:
        """
        Offset the backend expected, when it rejected an append as misplaced.

        Dropbox reports it either at ``error.correct_offset`` (append) or
        nested under ``error.lookup_failed`` (finish).
        """
        error = self.payload.get('error')
        if not isinstance(error, dict):
            return None
        for candidate in (error, error.get('lookup_failed')):
            if isinstance(candidate, dict) and candidate.get('.tag') == 'incorrect_offset':
                offset = candidate.get('correct_offset')
                if isinstance(offset, int):
                    return offset
        return None


class CancelledError(AlbumPyException):
    """
    Raised when the user cancels an upload.

    Not a failure: callers should unwind silently and show a neutral state.
    Distinct from ``asyncio.CancelledError``, which albumpy never raises for
    user-initiated cancellation.
    """

    def __init__(self, message: str = "Upload cancelled") -> None:
        super().__init__(message)


class LinkError(AlbumPyException):
    """Raised when files were uploaded but no shareable link could be produced."""
    pass
