"""
Feed script files through the tokenizer and the executor, one connection per
file, in the order the files were given.
"""
from __future__ import annotations

import pathlib
import typing as t

from sqlbatch.config import Environment
from sqlbatch.driver import connection
from sqlbatch.executor import ExecutionPolicy, ExecutionResult, execute
from sqlbatch.tokenizer import tokenize


def read_script(path: pathlib.Path) -> str:
    """Decode *path* as UTF‑8; undecodable bytes become U+FFFD instead of failing."""
    return path.read_bytes().decode("utf-8", errors="replace")


def policy_for(env: Environment, **overrides: t.Any) -> ExecutionPolicy:
    """Build the execution policy of *env*; ``None`` overrides are ignored."""
    policy = ExecutionPolicy(
        force=env.force,
        serial=env.serial,
        database=env.database if env.switch_database else None,
        verbosity=env.verbosity,
    )
    return ExecutionPolicy(
        **{**vars(policy), **{k: v for k, v in overrides.items() if v is not None}}
    )


async def process_file(
    path: pathlib.Path,
    env: Environment,
    policy: ExecutionPolicy,
) -> ExecutionResult:
    statements = tokenize(read_script(path), keep_empty=False)

    async with connection(env) as session:
        return await execute(statements, session, policy, source=str(path))


async def run_files(
    paths: t.Iterable[pathlib.Path],
    env: Environment,
    policy: ExecutionPolicy,
) -> list[ExecutionResult]:
    """
    Process every file of *paths*.  A file aborted under the non‑force policy
    raises :class:`~sqlbatch.errors.StatementError` and halts the whole run.
    """
    results: list[ExecutionResult] = []
    for path in paths:
        result = await process_file(path, env, policy)
        results.append(result)
        result.raise_for_abort()
    return results
