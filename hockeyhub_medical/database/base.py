"""
Database Module for HockeyHub Medical - Base Components
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Core database components: the pooled gateway, its unavailable fallback,
transaction scopes, the repository base class and the migration runner.

:copyright: (c) 2024-present HockeyHub
"""

import asyncio
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import asyncpg

from ..config import DEFAULT_SERVICE, pool_params
from ..errors import DatabaseError, DatabaseUnavailableError
from ..logging_config import DatabaseLogger
from . import query_builder
from .query_builder import Table

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'migrations')


class Gateway(ABC):
    """Interface every repository talks to."""

    def __init__(self, service: str = DEFAULT_SERVICE):
        self.service = service
        self.db_logger = DatabaseLogger()
        self.logger = self.db_logger.logger

    @abstractmethod
    async def query(self, text: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a statement and return its rows as dicts."""
        pass

    @abstractmethod
    async def execute(self, text: str, params: Sequence[Any] = ()) -> str:
        """Run a statement and return the driver's status string."""
        pass

    @abstractmethod
    def get_connection(self):
        """Async context manager yielding one raw driver connection."""
        pass

    @abstractmethod
    def transaction(self):
        """Async context manager yielding a gateway bound to one transaction."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class DatabaseConnection(Gateway):
    """Manages the asyncpg connection pool and provides connection context."""

    def __init__(self, conn_params: Dict[str, Any], service: str = DEFAULT_SERVICE):
        super().__init__(service)
        self._validate_config(conn_params)
        self.conn_params = dict(conn_params)
        self.pool = None

    def _validate_config(self, conn_params: Dict[str, Any]) -> None:
        """Validate database connection parameters."""
        required_keys = ['host', 'database', 'user', 'password']
        for key in required_keys:
            if key not in conn_params:
                raise KeyError(f'No {key.title()} provided for DB connection')

    async def open(self) -> 'DatabaseConnection':
        """Create the connection pool. Raises whatever the driver raises."""
        if self.pool is not None:
            return self
        settings = {**pool_params(), **self.conn_params}
        self.db_logger.log_connection(
            f"opening pool for {self.service} at {settings['host']}:{settings.get('port', 5432)}/{settings['database']}"
        )
        self.pool = await asyncpg.create_pool(**settings)
        self.logger.info(f"Database pool for {self.service} ready (max {settings['max_size']} connections)")
        return self

    async def close(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None
        self.db_logger.log_connection(f"closed pool for {self.service}")

    @asynccontextmanager
    async def get_connection(self):
        """Context manager for database connections."""
        if self.pool is None:
            raise DatabaseError("Database pool is not open")
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError) as e:
            self.logger.error(f"Database error: {e}", exc_info=True)
            raise DatabaseError(f"Database operation failed: {e}") from e

    async def query(self, text: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        async with self.get_connection() as conn:
            rows = await conn.fetch(text, *params)
        return [dict(row) for row in rows]

    async def execute(self, text: str, params: Sequence[Any] = ()) -> str:
        async with self.get_connection() as conn:
            return await conn.execute(text, *params)

    @asynccontextmanager
    async def transaction(self):
        """
        Run a block of statements atomically.

        Example:
            async with gateway.transaction() as tx:
                await tx.query("INSERT ...", params)
                await tx.query("UPDATE ...", params)

        Any exception leaving the block rolls the transaction back.
        """
        async with self.get_connection() as conn:
            async with TransactionConnection(conn, self).scope() as tx:
                yield tx

    async def health_check(self) -> bool:
        """Check database connection health."""
        try:
            async with self.get_connection() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except (DatabaseError, OSError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Health check failed for {self.service}: {e}")
            return False


class TransactionConnection(Gateway):
    """Gateway bound to a single connection inside an open transaction."""

    def __init__(self, conn, parent: Gateway):
        super().__init__(parent.service)
        self.conn = conn

    @asynccontextmanager
    async def scope(self):
        transaction = self.conn.transaction()
        await transaction.start()
        self.db_logger.log_connection('BEGIN')
        try:
            yield self
        except BaseException:
            await transaction.rollback()
            self.db_logger.log_connection('ROLLBACK')
            raise
        else:
            await transaction.commit()
            self.db_logger.log_connection('COMMIT')

    async def query(self, text: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        rows = await self.conn.fetch(text, *params)
        return [dict(row) for row in rows]

    async def execute(self, text: str, params: Sequence[Any] = ()) -> str:
        return await self.conn.execute(text, *params)

    @asynccontextmanager
    async def get_connection(self):
        yield self.conn

    @asynccontextmanager
    async def transaction(self):
        # Nested scopes become savepoints
        async with TransactionConnection(self.conn, self).scope() as tx:
            yield tx

    async def health_check(self) -> bool:
        return True


class UnavailableDatabase(Gateway):
    """
    Stand-in used when the pool could not be opened at startup.

    Every operation fails with :class:`DatabaseUnavailableError`, so callers
    see an ordinary database failure per request instead of a crashed service.
    """

    async def query(self, text: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        raise DatabaseUnavailableError()

    async def execute(self, text: str, params: Sequence[Any] = ()) -> str:
        raise DatabaseUnavailableError()

    @asynccontextmanager
    async def get_connection(self):
        raise DatabaseUnavailableError()
        yield  # pragma: no cover

    @asynccontextmanager
    async def transaction(self):
        raise DatabaseUnavailableError()
        yield  # pragma: no cover

    async def health_check(self) -> bool:
        return False


@asynccontextmanager
async def guarded_transaction(gateway: Gateway, action: str):
    """
    Open a transaction on ``gateway`` for one repository or service action.

    Failures to begin or commit the transaction are logged and raised as
    ``DatabaseError("Database error while <action>.")``. Exceptions raised
    inside the block propagate unchanged after the rollback.
    """
    block_failed = False
    try:
        async with gateway.transaction() as tx:
            try:
                yield tx
            except BaseException:
                block_failed = True
                raise
    except Exception as e:
        if block_failed:
            raise
        gateway.db_logger.log_error(action, e)
        raise DatabaseError(f"Database error while {action}.") from e


async def connect(conn_params: Dict[str, Any], service: str = DEFAULT_SERVICE, strict: bool = False) -> Gateway:
    """
    Open a pooled gateway for a service.

    Args:
        conn_params: Database connection parameters
        service: Owning service name, used in logs
        strict: Raise instead of falling back when the pool cannot be opened

    Returns:
        An open :class:`DatabaseConnection`, or an :class:`UnavailableDatabase`
        if the pool could not be created and ``strict`` is false
    """
    connection = DatabaseConnection(conn_params, service)
    try:
        await connection.open()
    except Exception as e:
        if strict:
            raise DatabaseError(f"Could not open database pool for {service}: {e}") from e
        connection.db_logger.log_error('connect', e)
        connection.logger.warning(f"Database for {service} unavailable, continuing in degraded mode")
        return UnavailableDatabase(service)
    return connection


class BaseRepository(ABC):
    """Base class for all database repositories."""

    def __init__(self, gateway: Gateway, table: Table):
        self.db = gateway
        self.table = table
        self.logger = gateway.logger

    async def _fetch_all(self, query: str, params: Sequence[Any] = (), action: str = 'running query') -> List[Dict[str, Any]]:
        """Execute a query that returns multiple results."""
        self.db.db_logger.log_query(query, params)
        try:
            results = await self.db.query(query, params)
        except Exception as e:
            self.db.db_logger.log_error(action, e)
            raise DatabaseError(f"Database error while {action}.") from e
        self.logger.debug(f"Fetch all query executed, returned {len(results)} rows")
        return results

    def _transaction(self, action: str):
        """Transaction scope whose begin/commit failures are reported as ``action``."""
        return guarded_transaction(self.db, action)

    async def _fetch_one(self, query: str, params: Sequence[Any] = (), action: str = 'running query') -> Optional[Dict[str, Any]]:
        """Execute a query that returns a single result."""
        results = await self._fetch_all(query, params, action)
        return results[0] if results else None

    async def _fetch_scalar(self, query: str, params: Sequence[Any] = (), action: str = 'running query') -> Any:
        """Execute a query that returns a single value."""
        result = await self._fetch_one(query, params, action)
        if result:
            return next(iter(result.values()))
        return None

    async def _find(
        self,
        scope_value: Any,
        criteria: Mapping[str, Any],
        limit: int,
        offset: int,
        action: str,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query, params = query_builder.build_select(self.table, scope_value, criteria, limit, offset, order_by)
        return await self._fetch_all(query, params, action)

    async def _count(self, scope_value: Any, criteria: Mapping[str, Any], action: str) -> int:
        query, params = query_builder.build_count(self.table, scope_value, criteria)
        return await self._fetch_scalar(query, params, action) or 0

    async def _get(self, record_id: Any, scope_value: Any, action: str) -> Optional[Dict[str, Any]]:
        query, params = query_builder.build_get(self.table, record_id, scope_value)
        return await self._fetch_one(query, params, action)

    async def _insert(
        self,
        scope_value: Any,
        data: Mapping[str, Any],
        action: str,
        expressions: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        query, params = query_builder.build_insert(self.table, scope_value, data, expressions)
        return await self._fetch_one(query, params, action)

    async def _update(self, record_id: Any, scope_value: Any, changes: Mapping[str, Any], action: str) -> Optional[Dict[str, Any]]:
        query, params = query_builder.build_update(self.table, record_id, scope_value, changes)
        result = await self._fetch_one(query, params, action)
        if result is None:
            self.logger.debug(f"No {self.table.name} row {record_id} in {self.table.scope} {scope_value}")
        return result

    async def _delete(self, record_id: Any, scope_value: Any, action: str) -> bool:
        query, params = query_builder.build_delete(self.table, record_id, scope_value)
        deleted = await self._fetch_all(query, params, action)
        return len(deleted) > 0

    @abstractmethod
    async def get_by_id(self, record_id: Any, scope_value: Any) -> Optional[Dict[str, Any]]:
        """Get a record by its primary key within its scope."""
        pass

    @abstractmethod
    async def insert(self, scope_value: Any, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a new record."""
        pass

    @abstractmethod
    async def update(self, record_id: Any, scope_value: Any, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update an existing record."""
        pass

    @abstractmethod
    async def delete(self, record_id: Any, scope_value: Any) -> bool:
        """Delete a record by its primary key within its scope."""
        pass

    async def count(self, scope_value: Any, **filters: Any) -> int:
        """Count the records in one scope."""
        return await self._count(scope_value, filters, f"counting {self.table.name.replace('_', ' ')}")


class MigrationManager:
    """Handles database schema migrations."""

    def __init__(self, gateway: Gateway, migrations_dir: str = MIGRATIONS_DIR):
        self.db = gateway
        self.migrations_dir = migrations_dir
        self.logger = gateway.logger

    async def get_current_version(self) -> int:
        """Get the current database version."""
        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INT PRIMARY KEY,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        rows = await self.db.query("SELECT MAX(version) AS version FROM schema_migrations")
        version = rows[0]['version'] if rows else None
        return version if version is not None else 0

    async def run_migrations(self) -> bool:
        """Run all pending migrations."""
        try:
            current_version = await self.get_current_version()
            pending_migrations = [
                (version, filename) for version, filename in self._get_migration_files()
                if version > current_version
            ]

            if not pending_migrations:
                self.logger.info("No pending migrations")
                return True

            for version, filename in pending_migrations:
                self.logger.info(f"Running migration {version}: {filename}")

                with open(os.path.join(self.migrations_dir, filename), 'r', encoding='utf-8') as f:
                    migration_sql = f.read()

                async with self.db.transaction() as tx:
                    await tx.execute(migration_sql)
                    await tx.execute("INSERT INTO schema_migrations (version) VALUES ($1)", (version,))

                self.logger.info(f"Completed migration {version}")

            return True

        except Exception as e:
            self.logger.error(f"Migration failed: {e}", exc_info=True)
            return False

    def _get_migration_files(self) -> List[Tuple[int, str]]:
        """Get list of migration files sorted by version."""
        migrations = []

        if not os.path.exists(self.migrations_dir):
            self.logger.warning(f"Migrations directory not found: {self.migrations_dir}")
            return migrations

        for filename in os.listdir(self.migrations_dir):
            if filename.endswith('.sql'):
                try:
                    version = int(filename.split('_', 1)[0].split('.')[0])
                    migrations.append((version, filename))
                except ValueError:
                    self.logger.warning(f"Invalid migration filename: {filename}")

        return sorted(migrations)
