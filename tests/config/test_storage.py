from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from transitgraph.config import storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("TRANSITGRAPH_DATA_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.database_path == custom.resolve() / storage.DEFAULT_DB_FILENAME
    assert not custom.exists()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    assert storage.get_database_uri() == "sqlite:///override.db"


def test_database_uri_creates_the_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("TRANSITGRAPH_DATA_DIR", str(tmp_path / "data-dir"))

    uri = storage.get_database_uri()

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_server_databases_ping_their_pool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://registry@db/transit")
    monkeypatch.setenv("TRANSITGRAPH_DB_ECHO", "yes")

    config = storage.get_database_config()

    assert config.is_sqlite is False
    assert config.engine_options() == {"future": True, "echo": True, "pool_pre_ping": True}
    assert "pool_pre_ping" not in storage.DatabaseConfig(uri="sqlite://").engine_options()
