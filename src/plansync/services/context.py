"""Request-scoped context passed into every engine call."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models.clock import to_naive_utc, utcnow


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Who is acting, and at what instant.

    ``now`` pins the clock for a request (and for tests); when omitted the
    current UTC time is read on each call.
    """

    actor_id: int
    now: Optional[datetime] = None

    def clock(self) -> datetime:
        if self.now is not None:
            return to_naive_utc(self.now)
        return utcnow()
