from __future__ import annotations

import asyncio

import pytest

from sqlbatch.errors import QueryError


class FakeSession:
    """In‑memory stand‑in for :class:`sqlbatch.driver.Session`."""

    def __init__(self, fail=(), delays=None, slow=()) -> None:
        self.fail = set(fail)
        self.slow = set(slow)
        self.delays = delays or {}
        self.issued: list[str] = []
        self.completed: list[str] = []
        self.timeouts: list[float] = []
        self.closed = False

    async def query(self, sql: str, timeout: float) -> None:
        self.issued.append(sql)
        self.timeouts.append(timeout)
        await asyncio.sleep(self.delays.get(sql, 0))
        if sql in self.slow:
            raise TimeoutError
        if sql in self.fail:
            raise QueryError(f"You have an error in your SQL syntax near '{sql}'", 1064)
        self.completed.append(sql)


@pytest.fixture
def session_factory():
    return FakeSession


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "sqlbatch.config.yml"
    path.write_text(
        """
default_env: dev
environments:
  dev:
    host: db.local
    port: 3307
    database: app
    user: app_user
    password: ${SQLBATCH_TEST_PWD}
    verbosity: medium
  ci:
    user: ci
    password: secret
    force: false
    serial: true
    switch_database: true
    database: ci_db
""",
        encoding="utf-8",
    )
    return path
