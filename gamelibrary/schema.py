"""Database schema migrations and seeding."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

MIGRATIONS_DIR = Path("scripts/migrations")
VERSION_TABLE = "schema_migrations"

_FILE_NAME = re.compile(r"^(\d+)_.+\.(up|down)\.sql$")

log = logging.getLogger(__name__)


class MigrationError(Exception):
    """A migration could not be applied or rolled back."""


def _load_migrations(directory: Path) -> dict[int, dict[str, Path]]:
    if not directory.is_dir():
        raise MigrationError(f"migrations directory {directory} does not exist")
    found: dict[int, dict[str, Path]] = {}
    for path in directory.iterdir():
        match = _FILE_NAME.match(path.name)
        if match is None:
            continue
        scripts = found.setdefault(int(match[1]), {})
        if match[2] in scripts:
            raise MigrationError(f"duplicate {match[2]} migration for version {int(match[1])}")
        scripts[match[2]] = path
    return dict(sorted(found.items()))


def _execute_script(conn: Any, script: str) -> None:
    if hasattr(conn, "executescript"):
        conn.executescript(f"BEGIN;\n{script}\nCOMMIT;")
    else:
        _execute(conn, script)


def _execute(conn: Any, statement: str) -> list[tuple]:
    cursor = conn.cursor()
    try:
        cursor.execute(statement)
        return list(cursor.fetchall()) if cursor.description else []
    finally:
        cursor.close()


def _current_version(conn: Any) -> tuple[int | None, bool]:
    _execute(
        conn,
        f"CREATE TABLE IF NOT EXISTS {VERSION_TABLE} "
        "(version BIGINT NOT NULL PRIMARY KEY, dirty BOOLEAN NOT NULL)",
    )
    conn.commit()
    rows = _execute(conn, f"SELECT version, dirty FROM {VERSION_TABLE} LIMIT 1")
    return (int(rows[0][0]), bool(rows[0][1])) if rows else (None, False)


def _set_version(conn: Any, version: int | None, dirty: bool) -> None:
    _execute(conn, f"DELETE FROM {VERSION_TABLE}")
    if version is not None:
        flag = "TRUE" if dirty else "FALSE"
        _execute(conn, f"INSERT INTO {VERSION_TABLE} (version, dirty) VALUES ({int(version)}, {flag})")
    conn.commit()


def _run_step(conn: Any, script: Path | None, running: int, target: int | None, kind: str) -> None:
    if script is None:
        raise MigrationError(f"no {kind} migration for version {running}")
    _set_version(conn, running, dirty=True)
    try:
        _execute_script(conn, script.read_text(encoding="utf-8"))
    except Exception as exc:
        conn.rollback()
        raise MigrationError(f"migration {script.name} failed: {exc}") from exc
    _set_version(conn, target, dirty=False)


def migrate(conn: Any, up: bool) -> int | None:
    """Apply all pending migrations, or roll back the last one.

    Returns the schema version afterwards, None when no migration is applied.
    """
    migrations = _load_migrations(MIGRATIONS_DIR)
    current, dirty = _current_version(conn)
    if dirty:
        raise MigrationError(f"Dirty database version {current}. Fix and force version.")

    if up:
        pending = [v for v in migrations if current is None or v > current]
        if not pending:
            log.info("no change")
            return current
        for version in pending:
            _run_step(conn, migrations[version].get("up"), version, version, "up")
        return pending[-1]

    if current is None:
        raise MigrationError("no migration to roll back")
    if current not in migrations:
        raise MigrationError(f"no migration found for version {current}")
    earlier = [v for v in migrations if v < current]
    previous = earlier[-1] if earlier else None
    _run_step(conn, migrations[current].get("down"), current, previous, "down")
    return previous


def seed(conn: Any, script: str) -> None:
    """Run a seed script in one transaction, rolling back on failure."""
    try:
        _execute_script(conn, script)
    except Exception:
        conn.rollback()
        raise
    conn.commit()