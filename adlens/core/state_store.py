"""ADLENS — Session State Store.

A small key-value store for state that should survive restarts. The
reconciliation pipeline never reads it; only the dashboard service records
bookkeeping here.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from adlens.models.state_models import SessionState


class StateStore(ABC):
    """Abstract key-value store with explicit get/set/clear."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def clear(self, key: Optional[str] = None) -> None:
        """Remove one key, or every key when none is given."""
        ...


class MemoryStateStore(StateStore):
    """Process-local store, used in tests and when no database is wanted."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


class SQLStateStore(StateStore):
    """Store backed by the session_state table."""

    def __init__(self, engine):
        self.engine = engine

    def get(self, key: str, default: Any = None) -> Any:
        with Session(self.engine) as session:
            row = session.get(SessionState, key)
            return json.loads(row.value_json) if row else default

    def set(self, key: str, value: Any) -> None:
        with Session(self.engine) as session:
            row = session.get(SessionState, key)
            if row is None:
                row = SessionState(key=key, value_json=json.dumps(value))
            else:
                row.value_json = json.dumps(value)
                row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()

    def clear(self, key: Optional[str] = None) -> None:
        with Session(self.engine) as session:
            if key is None:
                for row in session.exec(select(SessionState)).all():
                    session.delete(row)
            else:
                row = session.get(SessionState, key)
                if row is not None:
                    session.delete(row)
            session.commit()
