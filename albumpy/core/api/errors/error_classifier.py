"""Dropbox error classification for the retry policy."""
from enum import Enum
from typing import Iterable, Optional

from ...exceptions import TransportError


class ErrorClass(Enum):
    """How the retry policy should treat a failed request."""

    TRANSIENT = 'transient'
    AUTH_EXPIRED = 'auth_expired'
    TERMINAL = 'terminal'


class ErrorClassifier:
    """
    Classifies transport errors by their summary text and HTTP status.

    Dropbox encodes the error class in ``error_summary`` as a path of tags,
    e.g. ``too_many_write_operations/..`` or ``path/conflict/folder/``, so a
    substring match on known markers is enough.
    """

    AUTH_MARKERS = ('expired_access_token',)

    def __init__(
        self,
        transient_markers: Iterable[str],
        transient_statuses: Iterable[int] = ()
    ):
        self._markers = tuple(m.lower() for m in transient_markers)
        self._statuses = frozenset(transient_statuses)

    def classify(self, error: TransportError) -> ErrorClass:
        """Classify a transport error."""
        summary = (error.summary or '').lower()

        if any(marker in summary for marker in self.AUTH_MARKERS):
            return ErrorClass.AUTH_EXPIRED

        if error.status is not None and error.status in self._statuses:
            return ErrorClass.TRANSIENT

        if any(marker in summary for marker in self._markers):
            return ErrorClass.TRANSIENT

        return ErrorClass.TERMINAL


def error_summary(payload: Optional[dict], default: str) -> str:
    """
    Extract the human-readable summary from a Dropbox error body.

    Prefers ``error_summary``, then ``error['.tag']``, then a plain string
    ``error``, then ``default``.
    """
    if not isinstance(payload, dict):
        return default
    summary = payload.get('error_summary')
    if summary:
        return str(summary)
    error = payload.get('error')
    if isinstance(error, dict) and error.get('.tag'):
        return str(error['.tag'])
    if isinstance(error, str) and error:
        return error
    return default


def is_conflict(error: TransportError) -> bool:
    """Returns True for 'path already exists' errors."""
    return 'path/conflict' in (error.summary or '')


def is_link_already_exists(error: TransportError) -> bool:
    """Returns True when a shared link for the path already exists."""
    return 'shared_link_already_exists' in (error.summary or '')
