# gamelibrary

The core of a game library web service: service configuration, domain
models for games, companies, genres, platforms, ratings and background
tasks, SQLite storage for them, schema migrations and seeding, and
building JSON responses and error bodies. It uses only the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `gamelibrary.config` builds a `Config` from a mapping of environment
  variables with `load_config(environ)` (default: `os.environ`). `Config`
  groups `DBSettings`, `WebSettings`, `ZipkinSettings`, `AuthSettings`,
  `IGDBSettings`, `SchedulerSettings`, `UploadcareSettings`, `RedisSettings`
  and `GraylogSettings`, each read from variables such as `DB_HOST`,
  `APP_ADDRESS` or `REDIS_ADDR`. `parse_duration(value)` turns strings such
  as `"300ms"`, `"1.5h"` or `"2m30s"` into a `timedelta`; bad values raise
  `ValueError`.
- `gamelibrary.model` holds the dataclasses and enums: `Game`, `CreateGame`,
  `UpdateGameData`, `UpdatedGame`, `GamesFilter`, `Company`, `CompanyType`,
  `Genre`, `Platform`, `CreateRating`, `RemoveRating`, `UserRating`, `Task`,
  `TaskInfo`, `TaskStatus`, `SortOrder` and `OrderBy`.
  `get_game_slug(name)` lower-cases a name and replaces spaces with dashes.
  `Game.to_update_game_data(upd)` merges a partial `UpdatedGame` into the
  game's current values; a new name also sets a new slug.
  `decode_task_settings(src)` and `encode_task_settings(settings)` convert
  task settings between bytes and their stored form.
- `gamelibrary.errors` defines `NotFoundError` (compared by entity and id),
  `TransactionLockedError` and `check_rows_affected(count, entity, entity_id)`.
- `gamelibrary.storage` has `Storage`, a repository over an
  `sqlite3.Connection`. The table definitions are in `storage.SCHEMA`; create
  them with `conn.executescript(SCHEMA)` before use. It creates and queries
  companies, games, genres, platforms, ratings and background tasks, lists
  top developers, publishers and genres by number of games, and pages
  through games with `GamesFilter` and the orderings
  `ORDER_GAMES_BY_DEFAULT`, `ORDER_GAMES_BY_NAME` and
  `ORDER_GAMES_BY_RELEASE_DATE`. Lookups of missing rows raise
  `NotFoundError`; failed writes raise `StorageError`.
  `Storage.transaction()` is a context manager that commits on success and
  rolls back on error; the connection it yields can be passed as `tx` to
  `get_task` and `update_task`.
- `gamelibrary.schema` applies all pending migrations or rolls back the last
  one with `migrate(conn, up)`, reading `<version>_<name>.up.sql` and
  `.down.sql` files from `scripts/migrations` relative to the working
  directory and keeping the version in a `schema_migrations` table. Failures
  raise `MigrationError`. `seed(conn, script)` runs an SQL script in one
  transaction.
- `gamelibrary.web_errors` provides `WebError` (with `from_message` and
  `from_status_code`), `FieldError`, `ErrorResponse` and `status_text`.
- `gamelibrary.response` builds `Response` objects (status code, body bytes,
  headers) with `respond(value, status_code)`, `respond_error(err)` and
  `respond_500()`. Only a `WebError` sets the status and message of an
  error response; messages of 5xx errors are replaced by the status text.
- `gamelibrary.helpers` provides `get_id_param(value)`, which turns a URL id
  segment into a positive 32-bit integer or raises a 400 `WebError`.

## Example

```python
import sqlite3

from gamelibrary.model import CreateGame, GamesFilter
from gamelibrary.storage import ORDER_GAMES_BY_NAME, SCHEMA, Storage

conn = sqlite3.connect(":memory:")
conn.executescript(SCHEMA)
storage = Storage(conn)

storage.create_game(CreateGame(name="Zelda", release_date="1986-02-21"))
games = storage.get_games(20, 1, GamesFilter(name="zelda", order_by=ORDER_GAMES_BY_NAME))
total = storage.get_games_count(GamesFilter(name="zelda"))
```

## What it does not do

The package has no HTTP server, routing or command-line tool; migrations and
seeding are run by calling `migrate` and `seed` from your own code, and the
migration and seed SQL files are not included. It does not decode or
validate JSON request bodies. Storage is for SQLite only.