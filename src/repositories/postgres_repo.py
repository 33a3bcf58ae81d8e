"""PostgreSQL repository using SQLAlchemy Core."""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.sql import Executable

Query = Union[str, Executable]


class PostgresRepository:
    """Thin wrapper to keep SQL organized and parameterized."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def _statement(query: Query) -> Executable:
        return text(query) if isinstance(query, str) else query

    def fetch_one(self, query: Query, params: Optional[dict] = None) -> Optional[Dict[str, Any]]:
        """Execute a SELECT and return one row as dict."""
        with self.engine.connect() as conn:
            row = conn.execute(self._statement(query), params or {}).fetchone()
            return dict(row._mapping) if row else None

    def fetch_all(self, query: Query, params: Optional[dict] = None) -> List[Dict[str, Any]]:
        """Execute a SELECT and return every row as dict."""
        with self.engine.connect() as conn:
            result = conn.execute(self._statement(query), params or {})
            return [dict(row._mapping) for row in result]

    def scalar(self, query: Query, params: Optional[dict] = None) -> Any:
        """Execute a SELECT returning a single value."""
        with self.engine.connect() as conn:
            return conn.execute(self._statement(query), params or {}).scalar()

    def execute(self, query: Query, params: Optional[dict] = None) -> Any:
        """Execute a parameterized statement in its own transaction."""
        with self.engine.begin() as conn:
            return conn.execute(self._statement(query), params or {})
