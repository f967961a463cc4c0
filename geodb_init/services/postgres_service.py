from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence, Union

import psycopg
from psycopg import sql

from geodb_init.models.credentials import CredentialBundle
from geodb_init.services.config import DatabaseTlsConfig


logger = logging.getLogger(__name__)

Query = Union[str, sql.Composable]


class PostgresServiceError(RuntimeError):
    pass


class PostgresConnectionError(PostgresServiceError):
    pass


class PostgresStatementError(PostgresServiceError):
    pass


class PostgresSession:
    """Thin wrapper over one autocommit connection.

    Every statement is its own transaction; there is nothing to roll back. Statement
    text is not logged because role creation carries password literals.
    """

    def __init__(self, conn: psycopg.AsyncConnection, *, label: str) -> None:
        self._conn = conn
        self._label = label

    @property
    def label(self) -> str:
        return self._label

    async def _execute(self, query: Query, params: Optional[Sequence[Any]]) -> psycopg.AsyncCursor:
        try:
            return await self._conn.execute(query, params)
        except psycopg.Error as exc:
            sqlstate = getattr(exc, "sqlstate", None)
            logger.error("Statement failed on %s (sqlstate=%s)", self._label, sqlstate)
            raise PostgresStatementError(f"Statement failed on {self._label} (sqlstate={sqlstate})") from exc

    async def execute(self, statement: Query, params: Optional[Sequence[Any]] = None) -> None:
        await self._execute(statement, params)

    async def exists(self, query: Query, params: Optional[Sequence[Any]] = None) -> bool:
        cur = await self._execute(query, params)
        return (await cur.fetchone()) is not None

    async def fetch_all(self, query: Query, params: Optional[Sequence[Any]] = None) -> list[tuple[Any, ...]]:
        cur = await self._execute(query, params)
        return list(await cur.fetchall())


class PostgresService:
    """Opens short-lived, encrypted connections with a given credential bundle.

    No pooling: each `connect()` block gets its own connection which is closed
    before the block exits.
    """

    def __init__(self, tls: DatabaseTlsConfig) -> None:
        self._tls = tls

    def _connect_kwargs(self, *, bundle: CredentialBundle, dbname: str) -> dict[str, Any]:
        return {
            "host": bundle.host,
            "port": bundle.port,
            "user": bundle.username,
            "password": bundle.password.get_secret_value(),
            "dbname": dbname,
            "sslmode": self._tls.sslmode,
            "sslrootcert": str(self._tls.root_cert_path),
            "connect_timeout": self._tls.connect_timeout_seconds,
            "autocommit": True,
        }

    @asynccontextmanager
    async def connect(self, *, bundle: CredentialBundle, dbname: str) -> AsyncIterator[PostgresSession]:
        if not dbname:
            raise ValueError("'dbname' must be provided")

        label = f"{bundle.username}@{bundle.host}:{bundle.port}/{dbname}"
        logger.info("Connecting to %s", label)
        try:
            conn = await psycopg.AsyncConnection.connect(**self._connect_kwargs(bundle=bundle, dbname=dbname))
        except psycopg.Error as exc:
            logger.error("Connection failed: %s", label)
            raise PostgresConnectionError(f"Failed to connect to {label}") from exc

        try:
            yield PostgresSession(conn, label=label)
        finally:
            await conn.close()
            logger.info("Closed connection to %s", label)
