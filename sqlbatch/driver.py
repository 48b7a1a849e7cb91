from __future__ import annotations

import asyncio
import typing as t
from contextlib import asynccontextmanager

import mysql.connector
from mysql.connector import aio

from sqlbatch.config import Environment
from sqlbatch.errors import ConnectError, QueryError


class Connection(t.Protocol):
    """What the executor needs from a database session."""

    async def query(self, sql: str, timeout: float) -> None:
        """Run *sql*; raise :class:`QueryError` or :class:`TimeoutError` on failure."""


class Session:
    """
    Adapter around one ``mysql.connector.aio`` connection.

    A MySQL connection carries a single query at a time, so concurrent
    callers are queued on a lock in arrival order.  The time bound covers
    the server round trip only, not the wait for the lock.

    A query that runs out of time leaves its reply unread on the wire, so the
    connection is dropped and every later query fails with a :class:`QueryError`.
    """

    def __init__(self, cnx: t.Any) -> None:
        self._cnx = cnx
        self._lock = asyncio.Lock()
        self._lost: str | None = None
        self._closed = False

    async def query(self, sql: str, timeout: float) -> None:
        async with self._lock:
            if self._lost:
                raise QueryError(self._lost)
            try:
                await asyncio.wait_for(self._run(sql), timeout)
            except mysql.connector.Error as err:
                raise QueryError(err.msg, err.errno) from err
            except TimeoutError:
                self._lost = f"connection dropped after a statement exceeded {timeout:g}s"
                await self._drop()
                raise

    async def _run(self, sql: str) -> None:
        # buffered: rows of a SELECT are drained so the next query can go out
        cur = await self._cnx.cursor(buffered=True)
        try:
            await cur.execute(sql)
        except mysql.connector.Error:
            await cur.close()
            raise
        await cur.close()

    async def _drop(self) -> None:
        self._closed = True
        try:
            await self._cnx.close()
        except mysql.connector.Error:
            # COM_QUIT cannot go out on a desynchronised connection
            pass

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._cnx.close()


@asynccontextmanager
async def connection(env: Environment) -> t.AsyncIterator[Session]:
    """
    Async context‑manager that yields a :class:`Session` on *env*.

    The session runs in **autocommit** mode: every statement of a script is
    applied on its own, the way the ``mysql`` client does it.  The connection
    is always closed on exit, whatever happened inside the block.
    """
    try:
        cnx = await aio.connect(**env.dsn(), autocommit=True)
    except mysql.connector.Error as err:
        # bad credentials, unknown database, network failure …
        raise ConnectError(
            f"Cannot connect to {env.host}:{env.port} as {env.user!r}: {err}"
        ) from err

    session = Session(cnx)
    try:
        yield session
    finally:
        await session.close()
