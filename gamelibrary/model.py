"""Domain entities of the game library."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class CompanyType(str, Enum):
    """Role a company plays for a game."""

    DEVELOPER = "dev"
    PUBLISHER = "pub"


class SortOrder(str, Enum):
    """Sort direction of a query."""

    ASCENDING = "ASC"
    DESCENDING = "DESC"


@dataclass(frozen=True)
class OrderBy:
    """Ordering of a query: a column and a direction."""

    field: str
    order: SortOrder


class TaskStatus(str, Enum):
    """State of a background task."""

    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class Company:
    """Game developer or publisher."""

    name: str
    id: int = 0
    igdb_id: int | None = None


@dataclass
class Genre:
    """Game genre."""

    name: str
    id: int = 0
    igdb_id: int = 0


@dataclass
class Platform:
    """Gaming platform."""

    name: str
    abbreviation: str = ""
    id: int = 0
    igdb_id: int = 0


@dataclass
class CreateRating:
    """A user's rating of a game."""

    rating: int
    user_id: str
    game_id: int


@dataclass
class RemoveRating:
    """Identifies a rating to remove."""

    user_id: str
    game_id: int


@dataclass
class UserRating:
    """A stored user rating."""

    game_id: int
    user_id: str
    rating: int


@dataclass
class UpdateGameData:
    """Full set of values written when updating a game."""

    name: str = ""
    developers: list[int] = field(default_factory=list)
    publishers: list[int] = field(default_factory=list)
    release_date: str = ""
    genres: list[int] = field(default_factory=list)
    logo_url: str = ""
    summary: str = ""
    slug: str = ""
    platforms: list[int] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    websites: list[str] = field(default_factory=list)
    igdb_rating: float = 0.0
    igdb_id: int = 0


@dataclass
class UpdatedGame:
    """Partial game update; fields left as None are unchanged."""

    name: str | None = None
    developer: str | None = None
    release_date: str | None = None
    genres_ids: list[int] | None = None
    logo_url: str | None = None
    summary: str | None = None
    platforms: list[int] | None = None
    screenshots: list[str] | None = None
    websites: list[str] | None = None


def get_game_slug(name: str) -> str:
    """Return the URL slug for a game name."""
    valid = name.encode("utf-8", "ignore").decode("utf-8")
    return valid.lower().replace(" ", "-")


@dataclass
class Game:
    """Stored game."""

    name: str
    id: int = 0
    developers: list[int] = field(default_factory=list)
    publishers: list[int] = field(default_factory=list)
    release_date: date | None = None
    genres: list[int] = field(default_factory=list)
    logo_url: str = ""
    rating: float = 0.0
    summary: str = ""
    slug: str = ""
    platforms: list[int] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    websites: list[str] = field(default_factory=list)
    igdb_rating: float = 0.0
    igdb_id: int = 0
    weight: float = 0.0

    def to_update_game_data(self, upd: UpdatedGame) -> UpdateGameData:
        """Merge a partial update into this game's current values."""
        data = UpdateGameData(
            name=self.name,
            developers=list(self.developers),
            publishers=list(self.publishers),
            release_date=self.release_date.isoformat() if self.release_date else "",
            genres=list(self.genres),
            logo_url=self.logo_url,
            summary=self.summary,
            slug=self.slug,
            platforms=list(self.platforms),
            screenshots=list(self.screenshots),
            websites=list(self.websites),
            igdb_rating=self.igdb_rating,
            igdb_id=self.igdb_id,
        )
        if upd.name is not None:
            data.name = upd.name
            data.slug = get_game_slug(upd.name)
        if upd.release_date is not None:
            data.release_date = upd.release_date
        if upd.genres_ids is not None:
            data.genres = list(upd.genres_ids)
        if upd.logo_url:
            data.logo_url = upd.logo_url
        if upd.summary is not None:
            data.summary = upd.summary
        if upd.platforms is not None:
            data.platforms = list(upd.platforms)
        if upd.screenshots is not None:
            data.screenshots = list(upd.screenshots)
        if upd.websites is not None:
            data.websites = list(upd.websites)
        return data


@dataclass
class CreateGame:
    """Values for a new game."""

    name: str
    developers_ids: list[int] = field(default_factory=list)
    publishers_ids: list[int] = field(default_factory=list)
    release_date: str = ""
    genres: list[int] = field(default_factory=list)
    logo_url: str = ""
    summary: str = ""
    slug: str = ""
    platforms: list[int] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    websites: list[str] = field(default_factory=list)
    igdb_rating: float = 0.0
    igdb_id: int = 0
    developer: str = ""
    publisher: str = ""


@dataclass
class GamesFilter:
    """Filter and ordering for game listings; zero values mean no filter."""

    name: str = ""
    developer_id: int = 0
    publisher_id: int = 0
    genre_id: int = 0
    order_by: OrderBy | None = None


@dataclass
class Task:
    """Background task state."""

    name: str
    status: TaskStatus = TaskStatus.IDLE
    run_count: int = 0
    last_run: datetime | None = None
    settings: bytes | None = None


@dataclass
class TaskInfo:
    """Schedule and body of a background task."""

    schedule: str
    fn: Callable[[], None]


def decode_task_settings(src: object) -> bytes | None:
    """Convert a database value to task settings bytes."""
    if src is None:
        return None
    if isinstance(src, str):
        return src.encode("utf-8", "surrogateescape")
    if isinstance(src, (bytes, bytearray, memoryview)):
        return bytes(src)
    raise TypeError(f"scan TaskSettings: unsupported type {type(src).__name__}")


def encode_task_settings(settings: bytes | None) -> str:
    """Convert task settings bytes to the text stored in the database."""
    if settings is None:
        return ""
    return bytes(settings).decode("utf-8", "surrogateescape")