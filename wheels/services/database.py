import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.pool import NullPool

from ..core.config import Config
from ..core.errors import QueryError


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def create_database_engine(config: Optional[Config] = None) -> Engine:
    """Create an engine for the configured database.

    Connections are not pooled and every statement commits on its own.
    """
    config = config or Config.from_env()
    url = config.database_url()
    logger.debug(f"Creating database engine for {url.render_as_string(hide_password=True)}")
    return create_engine(url, poolclass=NullPool, isolation_level="AUTOCOMMIT")


@lru_cache(maxsize=None)
def default_engine() -> Engine:
    return create_database_engine()


class Database:
    """Raw database access for one request.

    The connection is opened on first use and reused for every statement
    issued through this object until ``close()``.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self._engine = engine
        self._connection: Optional[Connection] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = default_engine()
        return self._engine

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            self._connection = self.engine.connect()
        return self._connection

    def now(self) -> str:
        """Format the current time as a SQL DATETIME string."""
        return datetime.now().strftime(TIMESTAMP_FORMAT)

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute any parameterized statement.

        Args:
            sql: SQL text with named placeholders such as ``:id``
            params: values for the placeholders

        Returns:
            Rows as dicts, or an empty list if the statement returns no rows

        Raises:
            QueryError: when the parameters don't match the statement
        """
        try:
            result = self.connection.execute(text(sql), dict(params or {}))
        except sa_exc.OperationalError:
            logger.error(f"Database unavailable while running: {sql}")
            raise
        except sa_exc.StatementError as e:
            logger.error(f"Query failed: {sql} - {e.orig or e}")
            raise QueryError(f"Invalid query or parameters: {sql}", orig=e) from e

        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]

    def execute(self, statement, params: Optional[Mapping[str, Any]] = None) -> Result:
        logger.debug(f"Executing: {statement}")
        if params is None:
            return self.connection.execute(statement)
        return self.connection.execute(statement, dict(params))

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def get_database() -> Iterator[Database]:
    """FastAPI dependency yielding a request-scoped database handle."""
    db = Database()
    try:
        yield db
    finally:
        db.close()
