# gatorfeed

`gatorfeed` is a small command-line RSS aggregator. You register users,
add RSS feeds, follow the feeds you care about, then let the aggregator
fetch them on a schedule. The posts it collects are stored in an SQLite
database and can be browsed newest first.

## Installation

```
pip install .
```

The only third-party dependency is `python-dateutil`, used to read
publication dates that are not in the usual RSS date format.

## Configuration

Settings are kept in `~/.gatorconfig.json`:

```json
{"db_url": "/home/me/gator.db", "current_user_name": ""}
```

- `db_url` names the SQLite database. It may be a file path, `:memory:`,
  or a URL of the form `sqlite:///path/to/file.db`. The tables are
  created automatically the first time the database is opened.
- `current_user_name` is the user that commands act on. `login` and
  `register` update it for you.

The file must exist before the first run; if it is missing or is not a
JSON object with string values, every command stops with
`Error reading config: ...`. Once it exists, the database location can
be changed with `gatorfeed dburl <location>`.

## Usage

```
gatorfeed <command> [args...]
```

| Command | What it does |
| --- | --- |
| `help` | Lists the commands |
| `register <name>` | Creates a user and logs in as that user |
| `login <name>` | Makes an existing user the current user |
| `users` | Lists all users and marks the current one with `(current)` |
| `reset` | Deletes all users, along with their feeds, follows and posts |
| `dburl <location>` | Stores the database location in the config file |
| `addfeed <name> <url>` | Adds a feed and follows it as the current user |
| `feeds` | Lists every feed and the user who added it |
| `follow <url>` | Follows a feed that has already been added |
| `following` | Lists the feeds the current user follows |
| `unfollow <url>` | Stops following a feed |
| `agg <time_between_reqs>` | Fetches followed feeds repeatedly, one feed per tick |
| `browse [limit]` | Shows the newest posts from followed feeds (default 2) |

Commands marked with a user (`agg`, `browse`, `addfeed`, `follow`,
`following`, `unfollow`) look up `current_user_name` first and fail if
that user is not in the database.

### Aggregating

`agg` takes a duration made of numbers with units `ns`, `us` (or `µs`),
`ms`, `s`, `m` and `h`, such as `30s`, `1.5m` or `1h30m`; the duration
must be positive. Each tick picks the followed feed that has gone
unfetched the longest (feeds never fetched come first), marks it as
fetched, downloads it with an 0.8 second timeout and stores its items as
posts. Titles and descriptions have HTML entities unescaped. An item
whose publication date cannot be read is stamped with the current time.
Items whose link is already stored are reported as
`<title> already exists, skipping...`. A tick that fails (network error,
bad XML, no followed feeds) is skipped silently, and the command runs
until it is interrupted.

### Example session

```
gatorfeed register alice
gatorfeed addfeed "Example News" https://news.example.com/rss.xml
gatorfeed agg 1m
gatorfeed browse 5
```

If a command fails, the reason is printed to standard error with a
timestamp, for example `Error executing command: no user specified`,
and the exit status is 1. An unknown command prints `Unknown command.`
and running with no command prints the usage line.

## Using it from Python

The pieces can be used on their own:

- `gatorfeed.config.read_config()` and `Config` (`set_user`, `set_db`,
  `write`) handle the configuration file.
- `gatorfeed.database.connect(db_url)` returns a `Queries` object with
  methods such as `create_user`, `create_feed`, `create_feed_follow`,
  `get_next_feed_to_fetch`, `create_post` and `get_user_posts`. Lookups
  that find nothing raise `NotFoundError`; inserts that break a
  uniqueness rule raise `DuplicateError`.
- `gatorfeed.rss.parse_feed`, `fetch_feed` and `parse_pub_date` read RSS
  documents.
- `gatorfeed.duration.parse_duration` turns a duration string into a
  `timedelta`.
- `gatorfeed.commands.get_commands()` returns the command table used by
  the command line.

## What it does not do

Storage is SQLite only: a `db_url` with any scheme other than `sqlite`
(for example a PostgreSQL URL) is rejected. There is no server or web
interface, feeds are read as RSS only, and `agg` runs in the foreground
rather than as a background service.