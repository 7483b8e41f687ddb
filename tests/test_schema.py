import sqlite3

import pytest

from gamelibrary.schema import MigrationError, migrate, seed


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


def _tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {name for (name,) in rows}


@pytest.fixture
def migrations(tmp_path, monkeypatch):
    directory = tmp_path / "scripts" / "migrations"
    directory.mkdir(parents=True)
    (directory / "000001_genres.up.sql").write_text("CREATE TABLE genres (id INTEGER PRIMARY KEY, name TEXT);")
    (directory / "000001_genres.down.sql").write_text("DROP TABLE genres;")
    (directory / "000002_games.up.sql").write_text("CREATE TABLE games (id INTEGER PRIMARY KEY, name TEXT);")
    (directory / "000002_games.down.sql").write_text("DROP TABLE games;")
    (directory / "README.md").write_text("not a migration")
    monkeypatch.chdir(tmp_path)
    return directory


def test_up_applies_all_migrations(conn, migrations):
    assert migrate(conn, True) == 2
    assert {"genres", "games"} <= _tables(conn)
    assert conn.execute("SELECT version, dirty FROM schema_migrations").fetchall() == [(2, 0)]


def test_up_without_changes_keeps_version(conn, migrations):
    migrate(conn, True)
    assert migrate(conn, True) == 2
    assert conn.execute("SELECT version FROM schema_migrations").fetchall() == [(2,)]


def test_down_rolls_back_one_step(conn, migrations):
    migrate(conn, True)
    assert migrate(conn, False) == 1
    tables = _tables(conn)
    assert "games" not in tables
    assert "genres" in tables


def test_down_to_empty_then_error(conn, migrations):
    migrate(conn, True)
    migrate(conn, False)
    assert migrate(conn, False) is None
    assert "genres" not in _tables(conn)
    assert conn.execute("SELECT COUNT(*) FROM schema_migrations").fetchone() == (0,)
    with pytest.raises(MigrationError):
        migrate(conn, False)


def test_failed_migration_leaves_dirty_version(conn, migrations):
    (migrations / "000003_broken.up.sql").write_text("CREATE TABLE broken (;")
    with pytest.raises(MigrationError, match="000003_broken"):
        migrate(conn, True)
    assert conn.execute("SELECT version, dirty FROM schema_migrations").fetchall() == [(3, 1)]
    with pytest.raises(MigrationError, match="Dirty database version 3"):
        migrate(conn, True)


def test_missing_directory_raises(conn, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(MigrationError, match="does not exist"):
        migrate(conn, True)


def test_seed_inserts_rows(conn, migrations):
    migrate(conn, True)
    seed(conn, "INSERT INTO genres (name) VALUES ('rpg'); INSERT INTO genres (name) VALUES ('shooter');")
    names = [name for (name,) in conn.execute("SELECT name FROM genres ORDER BY id")]
    assert names == ["rpg", "shooter"]


def test_seed_failure_rolls_back(conn, migrations):
    migrate(conn, True)
    with pytest.raises(sqlite3.Error):
        seed(conn, "INSERT INTO genres (name) VALUES ('rpg'); INSERT INTO missing VALUES (1);")
    assert conn.execute("SELECT COUNT(*) FROM genres").fetchone() == (0,)