"""SQLite storage for users, feeds, follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .models import Feed, Post, User

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_fetched_at TEXT,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""


class NotFoundError(LookupError):
    """A query that expects one row found none."""


class DuplicateError(sqlite3.IntegrityError):
    """An insert would break a uniqueness constraint."""


@dataclass(frozen=True)
class FeedFollowDetail:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID
    feed_name: str
    user_name: str


@dataclass(frozen=True)
class FollowedFeed:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID
    feed_name: str


@dataclass(frozen=True)
class FeedWithCreator:
    name: str
    url: str
    creator_name: str


@dataclass(frozen=True)
class FeedLookup:
    name: str
    id: uuid.UUID


@dataclass(frozen=True)
class UserPost:
    id: uuid.UUID
    title: str
    description: str | None
    feed_name: str
    published_at: datetime | None
    url: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as err:
        if "UNIQUE" in str(err):
            raise DuplicateError(str(err)) from err
        raise


def _user(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_from_db_time(row["created_at"]),
        updated_at=_from_db_time(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=uuid.UUID(row["id"]),
        created_at=_from_db_time(row["created_at"]),
        updated_at=_from_db_time(row["updated_at"]),
        last_fetched_at=_from_db_time(row["last_fetched_at"]),
        name=row["name"],
        url=row["url"],
        user_id=uuid.UUID(row["user_id"]),
    )


class Queries:
    """Typed queries over an open SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.connection.row_factory = sqlite3.Row
        self.connection.execute("PRAGMA foreign_keys = ON")

    def __enter__(self) -> Queries:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()

    def _one(self, sql: str, params: tuple = ()) -> sqlite3.Row:
        with _translate_errors():
            row = self.connection.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    def _all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        return self.connection.execute(sql, params).fetchall()

    def _exec(self, sql: str, params: tuple = ()) -> None:
        with _translate_errors():
            self.connection.execute(sql, params)
            if self.connection.in_transaction:
                self.connection.commit()

    def ensure_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        self.connection.executescript(_SCHEMA)

    # users

    def create_user(self, name: str) -> User:
        now = _to_db_time(_now())
        self._exec(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(uuid.uuid4()), now, now, name),
        )
        return self.get_user(name)

    def del_all_users(self) -> None:
        self._exec("DELETE FROM users")

    def get_user(self, name: str) -> User:
        return _user(
            self._one("SELECT id, created_at, updated_at, name FROM users WHERE name = ?", (name,))
        )

    def list_users(self) -> list[str]:
        return [row["name"] for row in self._all("SELECT name FROM users ORDER BY rowid")]

    # feeds

    def create_feed(self, name: str, url: str, user_id: uuid.UUID) -> Feed:
        feed_id = str(uuid.uuid4())
        now = _to_db_time(_now())
        self._exec(
            "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (feed_id, now, now, name, url, str(user_id)),
        )
        return _feed(self._one("SELECT * FROM feeds WHERE id = ?", (feed_id,)))

    def get_next_feed_to_fetch(self, user_id: uuid.UUID) -> Feed:
        """Return the followed feed fetched least recently, never-fetched first."""
        return _feed(
            self._one(
                "SELECT * FROM feeds WHERE id IN"
                " (SELECT feed_id FROM feed_follows WHERE user_id = ?)"
                " ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1",
                (str(user_id),),
            )
        )

    def list_feeds_with_creators(self) -> list[FeedWithCreator]:
        rows = self._all(
            "SELECT feeds.name AS name, feeds.url AS url, users.name AS creator"
            " FROM feeds INNER JOIN users ON feeds.user_id = users.id ORDER BY feeds.rowid"
        )
        return [FeedWithCreator(row["name"], row["url"], row["creator"]) for row in rows]

    def lookup_feed_by_url(self, url: str) -> FeedLookup:
        row = self._one("SELECT name, id FROM feeds WHERE url = ?", (url,))
        return FeedLookup(name=row["name"], id=uuid.UUID(row["id"]))

    def mark_feed_fetched(self, feed_id: uuid.UUID) -> None:
        now = _to_db_time(_now())
        self._exec(
            "UPDATE feeds SET updated_at = ?, last_fetched_at = ? WHERE id = ?",
            (now, now, str(feed_id)),
        )

    # follows

    def create_feed_follow(self, user_id: uuid.UUID, feed_id: uuid.UUID) -> FeedFollowDetail:
        follow_id = str(uuid.uuid4())
        now = _to_db_time(_now())
        self._exec(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id)"
            " VALUES (?, ?, ?, ?, ?)",
            (follow_id, now, now, str(user_id), str(feed_id)),
        )
        row = self._one(
            "SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,"
            " feeds.name AS feed_name, users.name AS user_name"
            " FROM feed_follows ff"
            " INNER JOIN users ON ff.user_id = users.id"
            " INNER JOIN feeds ON ff.feed_id = feeds.id"
            " WHERE ff.id = ?",
            (follow_id,),
        )
        return FeedFollowDetail(
            id=uuid.UUID(row["id"]),
            created_at=_from_db_time(row["created_at"]),
            updated_at=_from_db_time(row["updated_at"]),
            user_id=uuid.UUID(row["user_id"]),
            feed_id=uuid.UUID(row["feed_id"]),
            feed_name=row["feed_name"],
            user_name=row["user_name"],
        )

    def delete_follow_by_url(self, url: str, user_id: uuid.UUID) -> None:
        self._exec(
            "DELETE FROM feed_follows WHERE user_id = ?"
            " AND feed_id IN (SELECT id FROM feeds WHERE url = ?)",
            (str(user_id), url),
        )

    def get_feeds_following(self, user_id: uuid.UUID) -> list[FollowedFeed]:
        rows = self._all(
            "SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,"
            " feeds.name AS feed_name FROM feed_follows ff"
            " INNER JOIN feeds ON ff.feed_id = feeds.id"
            " WHERE ff.user_id = ? ORDER BY ff.rowid",
            (str(user_id),),
        )
        return [
            FollowedFeed(
                id=uuid.UUID(row["id"]),
                created_at=_from_db_time(row["created_at"]),
                updated_at=_from_db_time(row["updated_at"]),
                user_id=uuid.UUID(row["user_id"]),
                feed_id=uuid.UUID(row["feed_id"]),
                feed_name=row["feed_name"],
            )
            for row in rows
        ]

    # posts

    def create_post(
        self,
        title: str,
        url: str,
        description: str | None,
        published_at: datetime | None,
        feed_id: uuid.UUID,
    ) -> Post:
        post_id = str(uuid.uuid4())
        now = _to_db_time(_now())
        self._exec(
            "INSERT INTO posts (id, created_at, updated_at, title, url, description,"
            " published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (post_id, now, now, title, url, description, _to_db_time(published_at), str(feed_id)),
        )
        row = self._one("SELECT * FROM posts WHERE id = ?", (post_id,))
        return Post(
            id=uuid.UUID(row["id"]),
            created_at=_from_db_time(row["created_at"]),
            updated_at=_from_db_time(row["updated_at"]),
            title=row["title"],
            url=row["url"],
            description=row["description"],
            published_at=_from_db_time(row["published_at"]),
            feed_id=uuid.UUID(row["feed_id"]),
        )

    def get_user_posts(self, user_id: uuid.UUID, limit: int) -> list[UserPost]:
        """Return the newest posts from feeds the user follows, at most ``limit``."""
        if limit < 0:
            raise ValueError("LIMIT must not be negative")
        rows = self._all(
            "SELECT posts.id, posts.title, posts.description, feeds.name AS feed_name,"
            " posts.published_at, posts.url FROM posts"
            " INNER JOIN feeds ON posts.feed_id = feeds.id"
            " WHERE posts.feed_id IN (SELECT feed_id FROM feed_follows WHERE user_id = ?)"
            " ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC LIMIT ?",
            (str(user_id), limit),
        )
        return [
            UserPost(
                id=uuid.UUID(row["id"]),
                title=row["title"],
                description=row["description"],
                feed_name=row["feed_name"],
                published_at=_from_db_time(row["published_at"]),
                url=row["url"],
            )
            for row in rows
        ]


def _sqlite_target(db_url: str) -> str:
    if not db_url:
        raise ValueError("no database URL configured")
    if "://" not in db_url:
        return db_url
    scheme, rest = db_url.split("://", 1)
    if scheme != "sqlite":
        raise ValueError(f"unsupported database scheme: {scheme!r}")
    if rest.startswith("/"):
        rest = rest[1:]
    return rest or ":memory:"


def connect(db_url: str | Path) -> Queries:
    """Open the SQLite database named by ``db_url`` and make sure its tables exist.

    ``db_url`` is a file path, ``:memory:``, or a ``sqlite:///path`` URL.
    """
    connection = sqlite3.connect(_sqlite_target(str(db_url)), isolation_level=None)
    queries = Queries(connection)
    queries.ensure_schema()
    return queries