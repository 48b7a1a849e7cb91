#!/usr/bin/env python3
"""
sqlbatch – run SQL script files statement by statement.

• ``sqlbatch run a.sql b.sql``   executes the files in order, one connection each
• ``sqlbatch split a.sql``       prints the statements without touching a database

Connection settings come from ``sqlbatch.config.yml`` (or ``-c``); every
command‑line option overrides the value of the selected environment.
"""
from __future__ import annotations

import asyncio
import dataclasses
import pathlib
import sys

import click
import sqlparse

from sqlbatch import __version__
from sqlbatch.config import load
from sqlbatch.constants import DEFAULT_DELIMITER, DEFAULT_TIMEOUT
from sqlbatch.errors import SqlBatchError
from sqlbatch.processor import policy_for, read_script, run_files
from sqlbatch.tokenizer import render, tokenize


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


@click.group()
@click.option(
    "-c", "--config", "config_path", type=click.Path(), help="env config YAML / TOML"
)
@click.pass_context
def main(ctx, config_path):
    ctx.obj = {"config_path": pathlib.Path(config_path) if config_path else None}


@main.command()
def version():
    click.echo(__version__)


@main.command()
@click.argument(
    "files", nargs=-1, required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
)
@click.option("-e", "--env", help="environment name from the config file")
@click.option("-u", "--user")
@click.option("-p", "--password", envvar="SQLBATCH_PASSWORD")
@click.option("-h", "--host")
@click.option("-P", "--port", type=int)
@click.option("-d", "--database", help="connect to this database")
@click.option("-v", "--verbosity", help="0-3 or none / low / medium / full")
@click.option("--force/--no-force", default=None, help="keep going after a failed statement")
@click.option("--serial/--concurrent", default=None, help="await each statement before the next")
@click.option("--switch-db/--no-switch-db", "switch_database", default=None,
              help="issue USE <database> before every file")
@click.option("--ssl/--no-ssl", default=None, help="require a TLS connection")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True,
              help="seconds allowed per statement")
@click.pass_context
def run(ctx, files, env, timeout, **overrides):
    try:
        environment = load(ctx.obj["config_path"], env, overrides)
        policy = policy_for(environment, timeout=timeout)
        results = asyncio.run(run_files(files, environment, policy))
    except SqlBatchError as exc:
        _fail(exc)
        return

    if any(not r.ok for r in results):
        failed = sum(len(r.failures) for r in results)
        click.echo(f"Finished with {failed} failed statement(s).", err=True)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path))
@click.option("--delimiter", default=DEFAULT_DELIMITER, show_default=True)
@click.option("--pretty", is_flag=True, help="reindent statements with sqlparse")
@click.option("--keep-empty", is_flag=True, help="also print blank statements")
def split(file, delimiter, pretty, keep_empty):
    """Print the statements of FILE, one per line, without executing them."""
    statements = tokenize(
        read_script(file), delimiter or DEFAULT_DELIMITER, keep_empty=keep_empty
    )
    if pretty:
        statements = [
            dataclasses.replace(
                s, text=sqlparse.format(s.text, reindent=True, keyword_case="upper")
            )
            for s in statements
        ]
    click.echo(render(statements), nl=False)
