from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from pagescope.models.analysis import PageAnalysis


class CacheEntry(BaseModel):
    """A cached analysis. Never updated in place; a fresh fetch replaces it."""

    model_config = ConfigDict(frozen=True)

    key: str  # Normalized URL
    created_at: datetime
    payload: PageAnalysis

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at >= ttl
