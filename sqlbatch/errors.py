"""
Exception hierarchy shared by every sub‑module.

Only :class:`StatementError` is tied to a single statement; everything else is
fatal for the whole run and surfaces before (or instead of) any execution.
"""
from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from sqlbatch.executor import StatementFailure


class SqlBatchError(RuntimeError):
    """Base class for every user‑visible sqlbatch problem."""


class ConfigError(SqlBatchError):
    """Raised for any user‑visible configuration problem."""


class ConnectError(SqlBatchError):
    """The database session could not be established."""


class QueryError(SqlBatchError):
    """A single query was rejected by the server."""

    def __init__(self, msg: str, errno: int | None = None) -> None:
        super().__init__(msg)
        self.msg = msg
        self.errno = errno

    def __str__(self) -> str:
        return f"{self.errno}: {self.msg}" if self.errno is not None else self.msg


class StatementError(SqlBatchError):
    """A statement failed while *force* was disabled; the run is over."""

    def __init__(self, failure: StatementFailure) -> None:
        super().__init__(
            f"Command#{failure.index} in file {failure.source!r} failed :: {failure.message}"
        )
        self.failure = failure
