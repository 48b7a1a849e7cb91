import pytest

from sqlbatch.config import Environment, load, parse_verbosity
from sqlbatch.errors import ConfigError


def test_load_default_env_from_yaml(config_file, monkeypatch):
    monkeypatch.setenv("SQLBATCH_TEST_PWD", "s3cret")
    env = load(config_file)

    assert env.name == "dev"
    assert (env.host, env.port, env.database) == ("db.local", 3307, "app")
    assert env.user == "app_user"
    assert env.password == "s3cret"
    assert env.verbosity == 2
    assert env.force is True and env.serial is False


def test_named_env_and_overrides(config_file):
    env = load(config_file, "ci", {"host": "10.0.0.5", "port": None})

    assert env.host == "10.0.0.5"
    assert env.port == 3306
    assert env.force is False
    assert env.serial is True
    assert env.switch_database is True


def test_toml_config(tmp_path):
    path = tmp_path / "sqlbatch.toml"
    path.write_text(
        'default_env = "prod"\n'
        "[environments.prod]\n"
        'user = "deploy"\n'
        'password = "pw"\n'
        "ssl = true\n"
        'verbosity = "none"\n',
        encoding="utf-8",
    )
    env = load(path)

    assert env.ssl is True
    assert env.verbosity == 0
    assert env.dsn()["ssl_disabled"] is False
    assert "database" not in env.dsn()


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load(tmp_path / "nope.yml")


def test_missing_default_file_builds_from_overrides(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = load(None, None, {"user": "root", "password": "pw", "host": None})
    assert env.name == "default"
    assert (env.host, env.port) == ("localhost", 3306)


def test_unknown_environment(config_file):
    with pytest.raises(ConfigError, match="'qa' not found"):
        load(config_file, "qa")


@pytest.mark.parametrize("settings", [{}, {"user": "u"}, {"password": "p"}])
def test_credentials_are_required(settings):
    with pytest.raises(ConfigError, match="username and password"):
        Environment("x", settings)


def test_unset_env_var_password_counts_as_missing(monkeypatch):
    monkeypatch.delenv("NOT_THERE", raising=False)
    with pytest.raises(ConfigError):
        Environment("x", {"user": "u", "password": "${NOT_THERE}"})


def test_switch_database_needs_database():
    with pytest.raises(ConfigError, match="switch_database"):
        Environment("x", {"user": "u", "password": "p", "switch_database": True})


@pytest.mark.parametrize(
    "value, level",
    [(None, 1), (0, 0), (3, 3), ("2", 2), ("NONE", 0), ("med", 2), ("M", 2),
     ("full", 3), ("F", 3), ("low", 1)],
)
def test_parse_verbosity(value, level):
    assert parse_verbosity(value) == level


@pytest.mark.parametrize("value", [4, -1, "loud", True])
def test_parse_verbosity_rejects(value):
    with pytest.raises(ConfigError):
        parse_verbosity(value)
