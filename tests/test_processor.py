import asyncio
from contextlib import asynccontextmanager

import pytest

from sqlbatch import processor
from sqlbatch.config import Environment
from sqlbatch.errors import StatementError


@pytest.fixture
def sessions(monkeypatch, session_factory):
    """Replace the MySQL connection with fake sessions, one per opened file."""
    opened = []

    def factory(fail=()):
        @asynccontextmanager
        async def fake_connection(env):
            session = session_factory(fail=fail)
            opened.append(session)
            try:
                yield session
            finally:
                session.closed = True

        monkeypatch.setattr(processor, "connection", fake_connection)
        return opened

    return factory


@pytest.fixture
def env():
    return Environment("test", {"user": "u", "password": "p", "database": "app"})


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_policy_for_environment(env):
    policy = processor.policy_for(env, timeout=10, serial=None)
    assert policy.force is True
    assert policy.serial is False
    assert policy.database is None
    assert policy.timeout == 10

    switching = Environment("s", {"user": "u", "password": "p", "database": "app",
                                  "switch_database": True, "serial": True})
    assert processor.policy_for(switching).database == "app"
    assert processor.policy_for(switching).serial is True


def test_process_file_skips_blank_statements(tmp_path, env, sessions):
    opened = sessions()
    path = write(tmp_path, "a.sql", "SELECT 1;;\n-- note\nSELECT 2;\n")
    policy = processor.policy_for(env, serial=True)

    result = asyncio.run(processor.process_file(path, env, policy))

    assert opened[0].issued == ["SELECT 1", "SELECT 2"]
    assert opened[0].closed
    assert result.source == str(path)
    assert result.succeeded == 2


def test_run_files_one_connection_per_file(tmp_path, env, sessions):
    opened = sessions()
    paths = [write(tmp_path, "1.sql", "SELECT 1;"), write(tmp_path, "2.sql", "SELECT 2;")]

    results = asyncio.run(processor.run_files(paths, env, processor.policy_for(env)))

    assert [r.succeeded for r in results] == [1, 1]
    assert [s.issued for s in opened] == [["SELECT 1"], ["SELECT 2"]]
    assert all(s.closed for s in opened)


def test_abort_halts_remaining_files(tmp_path, env, sessions):
    opened = sessions(fail={"BAD"})
    paths = [write(tmp_path, "1.sql", "BAD; SELECT 1;"), write(tmp_path, "2.sql", "SELECT 2;")]
    policy = processor.policy_for(env, force=False, serial=True)

    with pytest.raises(StatementError) as info:
        asyncio.run(processor.run_files(paths, env, policy))

    assert info.value.failure.index == 1
    assert info.value.failure.source == str(paths[0])
    assert len(opened) == 1
    assert opened[0].closed


def test_undecodable_bytes_are_replaced(tmp_path, env, sessions):
    opened = sessions()
    path = tmp_path / "latin1.sql"
    path.write_bytes(b"SELECT '\xff';\nSELECT 2;")

    assert processor.read_script(path) == "SELECT '�';\nSELECT 2;"

    result = asyncio.run(processor.process_file(path, env, processor.policy_for(env, serial=True)))
    assert opened[0].issued == ["SELECT '�'", "SELECT 2"]
    assert result.succeeded == 2
