"""Persistent storage of games, companies, genres, platforms, ratings and tasks."""

from __future__ import annotations

import json
import re
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any

from .errors import GameLibraryError, NotFoundError, TransactionLockedError, check_rows_affected
from .model import (
    Company,
    CreateGame,
    CreateRating,
    Game,
    GamesFilter,
    Genre,
    OrderBy,
    Platform,
    RemoveRating,
    SortOrder,
    Task,
    TaskStatus,
    UpdateGameData,
    UserRating,
    decode_task_settings,
    encode_task_settings,
)

GAME_RELEASE_YEAR_COEFF = 2.5
GAME_RATING_COEFF = 2.0
SLUG_MAX_LENGTH = 50

ORDER_GAMES_BY_DEFAULT = OrderBy("weight", SortOrder.DESCENDING)
ORDER_GAMES_BY_RELEASE_DATE = OrderBy("release_date", SortOrder.DESCENDING)
ORDER_GAMES_BY_NAME = OrderBy("name", SortOrder.ASCENDING)

SCHEMA = """
CREATE TABLE IF NOT EXISTS companies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    igdb_id INTEGER UNIQUE,
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS genres (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    igdb_id INTEGER UNIQUE,
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS platforms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    abbreviation TEXT NOT NULL DEFAULT '',
    igdb_id INTEGER UNIQUE
);
CREATE TABLE IF NOT EXISTS games (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    developers TEXT NOT NULL DEFAULT '[]',
    publishers TEXT NOT NULL DEFAULT '[]',
    release_date TEXT,
    genres TEXT NOT NULL DEFAULT '[]',
    logo_url TEXT NOT NULL DEFAULT '',
    rating REAL NOT NULL DEFAULT 0,
    summary TEXT NOT NULL DEFAULT '',
    slug TEXT NOT NULL DEFAULT '',
    platforms TEXT NOT NULL DEFAULT '[]',
    screenshots TEXT NOT NULL DEFAULT '[]',
    websites TEXT NOT NULL DEFAULT '[]',
    igdb_rating REAL NOT NULL DEFAULT 0,
    igdb_id INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS ratings (
    game_id INTEGER NOT NULL REFERENCES games (id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    rating INTEGER NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    PRIMARY KEY (game_id, user_id)
);
CREATE TABLE IF NOT EXISTS background_tasks (
    name TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'idle',
    run_count INTEGER NOT NULL DEFAULT 0,
    last_run TEXT,
    settings TEXT,
    created_at TEXT,
    updated_at TEXT
);
"""

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_GAME_COLUMNS = (
    "id, name, developers, publishers, release_date, genres, logo_url, rating, summary, "
    "platforms, screenshots, websites, slug, igdb_rating, igdb_id"
)
_WEIGHT_COLUMN = (
    f"(CAST(strftime('%Y', release_date) AS REAL) / {GAME_RELEASE_YEAR_COEFF} "
    f"+ igdb_rating + rating / {GAME_RATING_COEFF}) AS weight"
)

_TOP_COMPANIES = """
    SELECT c.id, c.name, c.igdb_id
    FROM companies c
    JOIN (
        SELECT j.value AS company_id FROM games, json_each(games.{column}) j
    ) AS g ON c.id = g.company_id
    GROUP BY c.id, c.name, c.igdb_id
    ORDER BY COUNT(*) DESC
    LIMIT ?"""


class StorageError(GameLibraryError):
    """A write to the database failed."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid date {value!r}: {exc}") from exc


def _to_json(values: Iterable[Any]) -> str:
    return json.dumps(list(values))


def _company_from_row(row: sqlite3.Row) -> Company:
    return Company(id=row["id"], name=row["name"], igdb_id=row["igdb_id"])


def _genre_from_row(row: sqlite3.Row) -> Genre:
    return Genre(id=row["id"], name=row["name"], igdb_id=row["igdb_id"] or 0)


def _platform_from_row(row: sqlite3.Row) -> Platform:
    return Platform(
        id=row["id"],
        name=row["name"],
        abbreviation=row["abbreviation"],
        igdb_id=row["igdb_id"] or 0,
    )


def _game_from_row(row: sqlite3.Row) -> Game:
    weight = row["weight"] if "weight" in row.keys() else None
    return Game(
        id=row["id"],
        name=row["name"],
        developers=json.loads(row["developers"]),
        publishers=json.loads(row["publishers"]),
        release_date=date.fromisoformat(row["release_date"]) if row["release_date"] else None,
        genres=json.loads(row["genres"]),
        logo_url=row["logo_url"],
        rating=float(row["rating"]),
        summary=row["summary"],
        slug=row["slug"],
        platforms=json.loads(row["platforms"]),
        screenshots=json.loads(row["screenshots"]),
        websites=json.loads(row["websites"]),
        igdb_rating=float(row["igdb_rating"]),
        igdb_id=row["igdb_id"],
        weight=float(weight) if weight is not None else 0.0,
    )


def _task_from_row(row: sqlite3.Row) -> Task:
    return Task(
        name=row["name"],
        status=TaskStatus(row["status"]),
        run_count=row["run_count"],
        last_run=datetime.fromisoformat(row["last_run"]) if row["last_run"] else None,
        settings=decode_task_settings(row["settings"]),
    )


def _games_conditions(games_filter: GamesFilter) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if games_filter.name:
        clauses.append("LOWER(name) LIKE ?")
        params.append(f"%{games_filter.name.lower()}%")
    for column, value in (
        ("genres", games_filter.genre_id),
        ("publishers", games_filter.publisher_id),
        ("developers", games_filter.developer_id),
    ):
        if value:
            clauses.append(f"? IN (SELECT value FROM json_each({column}))")
            params.append(value)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class Storage:
    """Repository over an SQLite connection; writes outside a transaction commit at once."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        conn.isolation_level = None
        self._conn = conn

    def _query(
        self, sql: str, params: Sequence[Any] = (), conn: sqlite3.Connection | None = None
    ) -> list[sqlite3.Row]:
        cursor = (conn or self._conn).cursor()
        cursor.row_factory = sqlite3.Row
        try:
            cursor.execute(sql, tuple(params))
            return cursor.fetchall()
        finally:
            cursor.close()

    def _execute(
        self,
        sql: str,
        params: Sequence[Any],
        context: str,
        conn: sqlite3.Connection | None = None,
    ) -> sqlite3.Cursor:
        try:
            return (conn or self._conn).execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise StorageError(f"{context}: {exc}") from exc

    def _insert(self, sql: str, params: Sequence[Any], context: str) -> int:
        cursor = self._execute(sql, params, context)
        if cursor.rowcount == 0:
            raise StorageError(f"{context}: no rows in result set")
        return int(cursor.lastrowid)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block in a transaction; commit on success, roll back on error."""
        self._conn.execute("BEGIN")
        try:
            yield self._conn
        except BaseException:
            self._conn.rollback()
            raise
        self._conn.commit()

    # companies

    def create_company(self, company: Company) -> int:
        """Insert a company and return its id."""
        return self._insert(
            "INSERT INTO companies (name, igdb_id, created_at) VALUES (?, ?, ?) "
            "ON CONFLICT (igdb_id) DO NOTHING",
            (company.name, company.igdb_id, _now()),
            f"create company with name {company.name} and igdb id {company.igdb_id or 0}",
        )

    def get_companies(self) -> list[Company]:
        rows = self._query("SELECT id, name, igdb_id FROM companies")
        return [_company_from_row(row) for row in rows]

    def get_company_id_by_name(self, name: str) -> int:
        """Return a company id by case-insensitive name."""
        rows = self._query("SELECT id FROM companies WHERE lower(name) = ?", (name.lower(),))
        if not rows:
            raise NotFoundError("company", name)
        return rows[0]["id"]

    def get_company_by_id(self, company_id: int) -> Company:
        rows = self._query("SELECT id, name, igdb_id FROM companies WHERE id = ?", (company_id,))
        if not rows:
            raise NotFoundError("company", company_id)
        return _company_from_row(rows[0])

    def get_top_developers(self, limit: int) -> list[Company]:
        """Return developers ordered by number of games, most first."""
        rows = self._query(_TOP_COMPANIES.format(column="developers"), (limit,))
        return [_company_from_row(row) for row in rows]

    def get_top_publishers(self, limit: int) -> list[Company]:
        """Return publishers ordered by number of games, most first."""
        rows = self._query(_TOP_COMPANIES.format(column="publishers"), (limit,))
        return [_company_from_row(row) for row in rows]

    # games

    def get_games(
        self, page_size: int, page: int, games_filter: GamesFilter | None = None
    ) -> list[Game]:
        """Return one page of games matching the filter."""
        if page < 1 or page_size < 0:
            raise ValueError(f"invalid page {page} or page size {page_size}")
        games_filter = games_filter or GamesFilter()
        where, params = _games_conditions(games_filter)
        sql = f"SELECT {_GAME_COLUMNS}, {_WEIGHT_COLUMN} FROM games{where}"
        order = games_filter.order_by
        if order is not None and order.field:
            if not _IDENTIFIER.match(order.field):
                raise ValueError(f"invalid order field {order.field!r}")
            sql += f" ORDER BY {order.field} {SortOrder(order.order).value}"
        sql += " LIMIT ? OFFSET ?"
        params += [page_size, (page - 1) * page_size]
        return [_game_from_row(row) for row in self._query(sql, params)]

    def get_games_count(self, games_filter: GamesFilter | None = None) -> int:
        where, params = _games_conditions(games_filter or GamesFilter())
        rows = self._query(f"SELECT COUNT(id) AS count FROM games{where}", params)
        return rows[0]["count"]

    def get_game_by_id(self, game_id: int) -> Game:
        rows = self._query(f"SELECT {_GAME_COLUMNS} FROM games WHERE id = ?", (game_id,))
        if not rows:
            raise NotFoundError("game", game_id)
        return _game_from_row(rows[0])

    def get_game_id_by_igdb_id(self, igdb_id: int) -> int:
        rows = self._query("SELECT id FROM games WHERE igdb_id = ?", (igdb_id,))
        if not rows:
            raise NotFoundError("game", igdb_id)
        return rows[0]["id"]

    def create_game(self, game: CreateGame) -> int:
        """Insert a game and return its id."""
        release_date = _parse_date(game.release_date)
        return self._insert(
            "INSERT INTO games (name, developers, publishers, release_date, genres, logo_url, "
            "summary, platforms, screenshots, websites, slug, igdb_rating, igdb_id, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                game.name,
                _to_json(game.developers_ids),
                _to_json(game.publishers_ids),
                release_date.isoformat(),
                _to_json(game.genres),
                game.logo_url,
                game.summary,
                _to_json(game.platforms),
                _to_json(game.screenshots),
                _to_json(game.websites),
                game.slug[:SLUG_MAX_LENGTH],
                game.igdb_rating,
                game.igdb_id,
                _now(),
            ),
            f"inserting game {game.name}",
        )

    def update_game(self, game_id: int, data: UpdateGameData) -> None:
        """Overwrite all values of a game."""
        release_date = _parse_date(data.release_date)
        cursor = self._execute(
            "UPDATE games SET name = ?, developers = ?, publishers = ?, release_date = ?, "
            "genres = ?, logo_url = ?, summary = ?, platforms = ?, screenshots = ?, websites = ?, "
            "slug = ?, igdb_rating = ?, igdb_id = ?, updated_at = ? WHERE id = ?",
            (
                data.name,
                _to_json(data.developers),
                _to_json(data.publishers),
                release_date.isoformat(),
                _to_json(data.genres),
                data.logo_url,
                data.summary,
                _to_json(data.platforms),
                _to_json(data.screenshots),
                _to_json(data.websites),
                data.slug,
                data.igdb_rating,
                data.igdb_id,
                _now(),
                game_id,
            ),
            f"updating game {game_id}",
        )
        check_rows_affected(cursor.rowcount, "game", game_id)

    def update_game_rating(self, game_id: int) -> None:
        """Set a game's rating to the mean of its user ratings."""
        cursor = self._execute(
            "UPDATE games SET rating = ("
            "SELECT COALESCE(CAST(SUM(rating) AS REAL) / COUNT(rating), 0) "
            "FROM ratings WHERE game_id = ?), updated_at = ? WHERE id = ?",
            (game_id, _now(), game_id),
            f"updating game {game_id} rating",
        )
        check_rows_affected(cursor.rowcount, "game", game_id)

    def delete_game(self, game_id: int) -> None:
        cursor = self._execute(
            "DELETE FROM games WHERE id = ?", (game_id,), f"deleting game {game_id}"
        )
        check_rows_affected(cursor.rowcount, "game", game_id)

    # genres

    def create_genre(self, genre: Genre) -> int:
        """Insert a genre and return its id."""
        return self._insert(
            "INSERT INTO genres (name, igdb_id, created_at) VALUES (?, ?, ?) "
            "ON CONFLICT (igdb_id) DO NOTHING",
            (genre.name, genre.igdb_id, _now()),
            f"create genre with name {genre.name} and igdb id {genre.igdb_id}",
        )

    def get_genres(self) -> list[Genre]:
        return [_genre_from_row(row) for row in self._query("SELECT id, name, igdb_id FROM genres")]

    def get_genre_by_id(self, genre_id: int) -> Genre:
        rows = self._query("SELECT id, name, igdb_id FROM genres WHERE id = ?", (genre_id,))
        if not rows:
            raise NotFoundError("genre", genre_id)
        return _genre_from_row(rows[0])

    def get_top_genres(self, limit: int) -> list[Genre]:
        """Return genres ordered by number of games, most first."""
        rows = self._query(
            "SELECT gr.id, gr.name, gr.igdb_id FROM genres gr "
            "JOIN (SELECT j.value AS genre_id FROM games, json_each(games.genres) j) AS g "
            "ON gr.id = g.genre_id "
            "GROUP BY gr.id, gr.name, gr.igdb_id ORDER BY COUNT(*) DESC LIMIT ?",
            (limit,),
        )
        return [_genre_from_row(row) for row in rows]

    # platforms

    def get_platforms(self) -> list[Platform]:
        rows = self._query("SELECT id, name, abbreviation, igdb_id FROM platforms")
        return [_platform_from_row(row) for row in rows]

    def get_platform_by_id(self, platform_id: int) -> Platform:
        rows = self._query(
            "SELECT id, name, abbreviation, igdb_id FROM platforms WHERE id = ?", (platform_id,)
        )
        if not rows:
            raise NotFoundError("platform", platform_id)
        return _platform_from_row(rows[0])

    # ratings

    def add_rating(self, rating: CreateRating) -> None:
        """Add a user's rating of a game, replacing an earlier one."""
        self._execute(
            "INSERT INTO ratings (game_id, user_id, rating, created_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT (game_id, user_id) "
            "DO UPDATE SET rating = excluded.rating, updated_at = excluded.created_at",
            (rating.game_id, rating.user_id, rating.rating, _now()),
            f"adding ratings to game with id {rating.game_id} from user with id {rating.user_id}",
        )

    def remove_rating(self, rating: RemoveRating) -> None:
        self._execute(
            "DELETE FROM ratings WHERE game_id = ? AND user_id = ?",
            (rating.game_id, rating.user_id),
            f"remove rating of game with id {rating.game_id} from user with id {rating.user_id}",
        )

    def get_user_ratings_by_games_ids(
        self, user_id: str, game_ids: Iterable[int]
    ) -> list[UserRating]:
        """Return a user's ratings of the given games."""
        rows = self._query(
            "SELECT game_id, rating, user_id FROM ratings "
            "WHERE user_id = ? AND game_id IN (SELECT value FROM json_each(?))",
            (user_id, _to_json(game_ids)),
        )
        return [
            UserRating(game_id=row["game_id"], user_id=row["user_id"], rating=row["rating"])
            for row in rows
        ]

    def get_user_ratings(self, user_id: str) -> dict[int, int]:
        """Return all of a user's ratings keyed by game id."""
        rows = self._query(
            "SELECT game_id, rating, user_id FROM ratings WHERE user_id = ?", (user_id,)
        )
        return {row["game_id"]: row["rating"] for row in rows}

    # background tasks

    def get_task(self, name: str, tx: sqlite3.Connection | None = None) -> Task:
        """Return a task, on the given transaction's connection if one is given."""
        try:
            rows = self._query(
                "SELECT name, status, run_count, last_run, settings "
                "FROM background_tasks WHERE name = ?",
                (name,),
                tx,
            )
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower():
                raise TransactionLockedError() from exc
            raise
        if not rows:
            raise NotFoundError("task", name)
        return _task_from_row(rows[0])

    def update_task(self, task: Task, tx: sqlite3.Connection | None = None) -> None:
        """Store a task's state; settings left as None keep their stored value."""
        settings = None if task.settings is None else encode_task_settings(task.settings)
        cursor = self._execute(
            "UPDATE background_tasks SET status = ?, last_run = ?, run_count = ?, "
            "settings = coalesce(?, settings), updated_at = ? WHERE name = ?",
            (
                TaskStatus(task.status).value,
                task.last_run.isoformat() if task.last_run else None,
                task.run_count,
                settings,
                _now(),
                task.name,
            ),
            f"updating task {task.name}",
            tx,
        )
        check_rows_affected(cursor.rowcount, "task", task.name)