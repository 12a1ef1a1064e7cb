"""Transport error classification."""
from .error_classifier import (
    ErrorClass,
    ErrorClassifier,
    error_summary,
    is_conflict,
    is_link_already_exists,
)

__all__ = [
    'ErrorClass',
    'ErrorClassifier',
    'error_summary',
    'is_conflict',
    'is_link_already_exists',
]
