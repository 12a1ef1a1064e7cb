"""Bearer credential model."""
from dataclasses import dataclass, field
import sys
import time
from typing import Optional

# Used for tokens that carry no expiry (pre-issued long-lived tokens)
NEVER_EXPIRES_MS = sys.maxsize


@dataclass(frozen=True)
class Credential:
    """
    A bearer token and the moment it stops being valid.

    Attributes:
        token: Bearer access token
        expires_at_epoch_ms: Expiry as milliseconds since the epoch
    """
    token: str = field(repr=False)
    expires_at_epoch_ms: int

    @classmethod
    def from_expires_in(
        cls,
        token: str,
        expires_in: Optional[float],
        now: Optional[float] = None
    ) -> 'Credential':
        """
        Build from a relative lifetime.

        Args:
            token: Access token
            expires_in: Lifetime in seconds (None means no expiry)
            now: Current time in seconds (defaults to time.time())
        """
        if expires_in is None:
            return cls(token=token, expires_at_epoch_ms=NEVER_EXPIRES_MS)
        current = time.time() if now is None else now
        return cls(token=token, expires_at_epoch_ms=int((current + float(expires_in)) * 1000))

    def is_usable(self, now_ms: int, safety_margin_ms: int = 0) -> bool:
        """Returns False once ``now >= expires_at - safety_margin``."""
        return now_ms < self.expires_at_epoch_ms - safety_margin_ms
