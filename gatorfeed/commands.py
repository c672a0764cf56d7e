"""The commands of the feed aggregator and the table that names them."""

from __future__ import annotations

import contextlib
import functools
import http.client
import re
import sqlite3
import time
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .config import Config
from .database import DuplicateError, Queries
from .duration import parse_duration
from .models import Post, User
from .rss import RSSItem, fetch_feed, parse_pub_date

DEFAULT_BROWSE_LIMIT = 2
SCRAPE_TIMEOUT = 0.8

_INTEGER = re.compile(r"[+-]?\d+")
_ZERO_TIME = "0001-01-01 00:00:00 +0000 UTC"
_SCRAPE_ERRORS = (
    LookupError,
    OSError,
    ValueError,
    ET.ParseError,
    sqlite3.Error,
    http.client.HTTPException,
)


class CommandError(Exception):
    """A command was given arguments it cannot work with."""


@dataclass
class State:
    """What every command works on: the database and the configuration."""

    db: Queries
    cfg: Config


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    callback: Callable[..., None]


def logged_in(handler: Callable[..., None]) -> Callable[..., None]:
    """Wrap ``handler`` so it receives the current user after the state."""

    @functools.wraps(handler)
    def wrapper(state: State, *args: str) -> None:
        user = state.db.get_user(state.cfg.current_user_name)
        return handler(state, user, *args)

    return wrapper


def _format_time(value: datetime | None) -> str:
    if value is None:
        return _ZERO_TIME
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.strftime("%z") or "+0000"
    zone = "UTC" if value.utcoffset() in (None, timedelta(0)) else offset
    return f"{text} {offset} {zone}"


def add_post(state: State, item: RSSItem, feed_id: uuid.UUID) -> Post | None:
    """Store one feed item; return the new post, or None if it was already stored."""
    try:
        published = parse_pub_date(item.pub_date)
    except ValueError:
        published = datetime.now(timezone.utc)
    try:
        post = state.db.create_post(
            title=item.title,
            url=item.link,
            description=item.description,
            published_at=published,
            feed_id=feed_id,
        )
    except DuplicateError:
        print(f"{item.title} already exists, skipping...")
        return None
    print(f"Added '{post.title}' to posts.")
    return post


def scrape_feeds(state: State, user: User) -> None:
    """Fetch the user's least recently fetched feed and store its items."""
    feed = state.db.get_next_feed_to_fetch(user.id)
    state.db.mark_feed_fetched(feed.id)
    rss = fetch_feed(feed.url, timeout=SCRAPE_TIMEOUT)
    if not rss.items:
        return
    print(f"Channel {rss.title}:")
    for item in rss.items:
        try:
            add_post(state, item, feed.id)
        except sqlite3.Error as err:
            print(err)


def command_agg(state: State, user: User, *args: str) -> None:
    """Scrape followed feeds forever, one every given interval."""
    if not args:
        raise CommandError("invalid number of arguments, missing duration between scrapes")
    try:
        interval = parse_duration(args[0])
    except ValueError as err:
        raise CommandError(str(err)) from err
    if interval <= timedelta(0):
        raise CommandError("duration between scrapes must be positive")

    period = interval.total_seconds()
    next_tick = time.monotonic() + period
    while True:
        with contextlib.suppress(*_SCRAPE_ERRORS):
            scrape_feeds(state, user)
        now = time.monotonic()
        if now < next_tick:
            time.sleep(next_tick - now)
            next_tick += period
        else:
            next_tick = now + period


def command_add_feed(state: State, user: User, *args: str) -> None:
    if len(args) < 2:
        raise CommandError("requires 2 arguments, <name> <url>")
    feed = state.db.create_feed(name=args[0], url=args[1], user_id=user.id)
    state.db.create_feed_follow(user_id=feed.user_id, feed_id=feed.id)
    print(f"Created new feed '{feed.name}' with URL '{feed.url}'\nYou are now following it.")


def command_browse(state: State, user: User, *args: str) -> None:
    limit = DEFAULT_BROWSE_LIMIT
    if args:
        if not _INTEGER.fullmatch(args[0]):
            raise CommandError(f"invalid number of posts: {args[0]!r}")
        limit = int(args[0])
    posts = state.db.get_user_posts(user.id, limit)
    print("Posts:")
    for post in posts:
        print(
            f"{post.title}\t{_format_time(post.published_at)}\n"
            f"{post.url}\n{post.description or ''}\n"
        )


def command_db_url(state: State, *args: str) -> None:
    if not args:
        raise CommandError("invalid number of arguments")
    state.cfg.set_db(args[0])
    print(f"Set DB URL to {args[0]}")


def command_feeds(state: State, *args: str) -> None:
    print("Feeds:")
    for record in state.db.list_feeds_with_creators():
        print(
            f"\tName:\t\t {record.name}\n\tURL:\t\t {record.url}\n"
            f"\tCreated By:\t {record.creator_name}\n"
        )


def command_follow(state: State, user: User, *args: str) -> None:
    if not args:
        raise CommandError("invalid number of arguments, need url")
    feed = state.db.lookup_feed_by_url(args[0])
    follow = state.db.create_feed_follow(user_id=user.id, feed_id=feed.id)
    print(f"Success\n{follow.user_name} is now following {follow.feed_name}")


def command_following(state: State, user: User, *args: str) -> None:
    feeds = state.db.get_feeds_following(user.id)
    if not feeds:
        print("You are not following any feeds. Add some!")
        return
    print("You are following:")
    for feed in feeds:
        print(f"\t* {feed.feed_name}")


def command_help(state: State, *args: str) -> None:
    print("-- HELP --")
    for command in get_commands().values():
        print(f"{command.name}\t\t{command.description}")


def command_login(state: State, *args: str) -> None:
    if not args:
        raise CommandError("no user specified")
    name = args[0]
    state.db.get_user(name)
    state.cfg.set_user(name)
    print(f"{name} has been set as current db user.")


def command_register(state: State, *args: str) -> None:
    if not args:
        raise CommandError("invalid number of arguments")
    state.db.create_user(args[0])
    command_login(state, args[0])


def command_reset(state: State, *args: str) -> None:
    state.db.del_all_users()
    print("All users deleted.")


def command_unfollow(state: State, user: User, *args: str) -> None:
    if not args:
        raise CommandError("missing url argument")
    state.db.delete_follow_by_url(url=args[0], user_id=user.id)
    print("Unfollowed.")


def command_users(state: State, *args: str) -> None:
    users = state.db.list_users()
    if not users:
        raise CommandError("no users")
    for name in users:
        if name == state.cfg.current_user_name:
            print(f" * {name} (current)")
        else:
            print(f" * {name}")


def get_commands() -> dict[str, Command]:
    """Return every command by name, in the order help lists them."""
    table = [
        Command("help", "Displays a help message", command_help),
        Command("register", "Register new user in database", command_register),
        Command("login", "Sets the current user in config", command_login),
        Command("users", "Lists all registered users, indicates current user", command_users),
        Command(
            "agg",
            "Aggregates RSS feeds followed based on <time_between_reqs> (duration string)",
            logged_in(command_agg),
        ),
        Command(
            "browse",
            "Browse through aggregated posts, specify number of posts (defaults to 2)",
            logged_in(command_browse),
        ),
        Command("addfeed", "Adds feed with <name> and <url>", logged_in(command_add_feed)),
        Command("feeds", "List feeds and feed creators", command_feeds),
        Command("follow", "Follow a feed with <url>", logged_in(command_follow)),
        Command(
            "following",
            "List the feeds the current user is following",
            logged_in(command_following),
        ),
        Command("unfollow", "Unfollow feed by <url>", logged_in(command_unfollow)),
        Command("dburl", "Sets the current DB url in config", command_db_url),
        Command("reset", "Reset all users in database (for testing)", command_reset),
    ]
    return {command.name: command for command in table}