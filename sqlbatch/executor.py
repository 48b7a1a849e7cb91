"""
Run an ordered list of statements over one connection.

Two scheduling modes are supported:

* **serial** – each statement is awaited before the next one is issued;
* **concurrent** – everything is issued at once and only the "all settled"
  state is awaited.  The connection decides how the queries are multiplexed.

Nothing here terminates the process.  A failure with *force* disabled marks
the returned :class:`ExecutionResult` as ``aborted`` and it is up to the
caller to stop the pipeline (see :func:`ExecutionResult.raise_for_abort`).
"""
from __future__ import annotations

import asyncio
import dataclasses
import typing as t

import click

from sqlbatch.constants import (
    DEFAULT_TIMEOUT,
    VERBOSITY_FULL,
    VERBOSITY_LOW,
    VERBOSITY_MEDIUM,
)
from sqlbatch.errors import QueryError, StatementError

if t.TYPE_CHECKING:
    from sqlbatch.driver import Connection
    from sqlbatch.tokenizer import Statement


@dataclasses.dataclass
class ExecutionPolicy:
    force: bool = True
    serial: bool = False
    # ``USE`` this database before the first statement
    database: str | None = None
    verbosity: int = VERBOSITY_LOW
    timeout: float = DEFAULT_TIMEOUT


@dataclasses.dataclass(frozen=True)
class StatementFailure:
    index: int              # 1‑based, 0 is the ``USE`` pre‑step
    message: str
    source: str


@dataclasses.dataclass
class ExecutionResult:
    source: str
    attempted: int = 0
    succeeded: int = 0
    failures: list[StatementFailure] = dataclasses.field(default_factory=list)
    aborted: bool = False
    # concurrent statements dropped after an abort
    cancelled: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_abort(self) -> None:
        """Raise :class:`StatementError` for the failure that ended the run."""
        if self.aborted:
            raise StatementError(self.failures[0])


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


class _Run:
    """State of one ``execute`` call."""

    def __init__(self, connection: Connection, policy: ExecutionPolicy, source: str) -> None:
        self.connection = connection
        self.policy = policy
        self.source = source
        self.result = ExecutionResult(source)

    def _echo(self, level: int, msg: str) -> None:
        if self.policy.verbosity >= level:
            click.echo(msg)

    async def _issue(self, index: int, sql: str) -> bool:
        """Send *sql* and book the outcome; failures are recorded, not raised."""
        try:
            await self.connection.query(sql, self.policy.timeout)
        except QueryError as err:
            message = str(err)
        except TimeoutError:
            message = f"no response within {self.policy.timeout:g}s"
        else:
            self.result.attempted += 1
            self.result.succeeded += 1
            return True

        self.result.attempted += 1
        self.result.failures.append(StatementFailure(index, message, self.source))
        if index:
            click.echo(f"Command#{index} in file '{self.source}' failed :: {message}", err=True)
        else:
            click.echo(f"USE DB Command failed :: {message}", err=True)
        return False

    async def _dispatch(self, index: int, sql: str) -> bool:
        msg = f"Executing '{self.source}' query #{index} ........ "
        if self.policy.verbosity >= VERBOSITY_FULL:
            msg += sql
        self._echo(VERBOSITY_MEDIUM, msg)

        if not await self._issue(index, sql):
            return False
        self._echo(VERBOSITY_MEDIUM, f"Successfully executed query #{index}")
        return True

    async def _switch_database(self, name: str) -> bool:
        self._echo(VERBOSITY_MEDIUM, f"Setting database to `{name}`......")
        if not await self._issue(0, f"USE {quote_identifier(name)}"):
            return False
        self._echo(VERBOSITY_MEDIUM, "Done")
        return True

    async def _serial(self, items: list[tuple[int, str]]) -> None:
        for index, sql in items:
            if not await self._dispatch(index, sql) and not self.policy.force:
                self.result.aborted = True
                return

    async def _concurrent(self, items: list[tuple[int, str]]) -> None:
        tasks = [asyncio.create_task(self._dispatch(index, sql)) for index, sql in items]
        if self.policy.force:
            await asyncio.gather(*tasks)
            return

        for fut in asyncio.as_completed(tasks):
            if not await fut:
                self.result.aborted = True
                break

        if self.result.aborted:
            # Statements still in flight are cancelled and drained before returning
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self.result.cancelled = sum(1 for task in pending if task.cancelled())

    async def run(self, statements: t.Sequence[Statement | str]) -> ExecutionResult:
        self._echo(VERBOSITY_LOW, f"Starting to process '{self.source}'")

        if self.policy.database:
            if not await self._switch_database(self.policy.database) and not self.policy.force:
                self.result.aborted = True

        items = [(index, str(stmt)) for index, stmt in enumerate(statements, 1)]
        if items and not self.result.aborted:
            if self.policy.serial:
                await self._serial(items)
            else:
                await self._concurrent(items)

        self._echo(
            VERBOSITY_LOW,
            f"Executed {self.result.succeeded} of {self.result.attempted} commands "
            f"from file '{self.source}'",
        )
        return self.result


async def execute(
    statements: t.Sequence[Statement | str],
    connection: Connection,
    policy: ExecutionPolicy | None = None,
    *,
    source: str = "<script>",
) -> ExecutionResult:
    """
    Issue *statements* on *connection* according to *policy* and return the
    aggregate outcome once every scheduled statement has settled.

    *source* names the script in log lines and failure records only.
    """
    return await _Run(connection, policy or ExecutionPolicy(), source).run(statements)
