"""ADLENS — Session State Models."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class SessionState(SQLModel, table=True):
    """One key of persisted session state (last sync, chosen window, ...)."""

    __tablename__ = "session_state"

    key: str = Field(primary_key=True)
    value_json: str = Field(description="JSON-encoded value")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
