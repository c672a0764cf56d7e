"""Command-line entry point: reads the configuration and runs one command."""

from __future__ import annotations

import sys
import time
from collections.abc import Sequence

from .commands import State, get_commands
from .config import read_config
from .database import Queries, connect

USAGE = "Usage: cli <command> [args...]"


class _LazyDatabase:
    """Opens the database on first use, so commands that never query it run without one."""

    def __init__(self, db_url: str) -> None:
        self._db_url = db_url
        self._queries: Queries | None = None

    def __getattr__(self, name: str):
        if self._queries is None:
            self._queries = connect(self._db_url)
        return getattr(self._queries, name)

    def close(self) -> None:
        if self._queries is not None:
            self._queries.close()
            self._queries = None


def _fatal(message: str) -> int:
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    print(f"{stamp} {message}", file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command named by the first argument; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        cfg = read_config()
    except (OSError, ValueError) as err:
        return _fatal(f"Error reading config: {err}")

    if not args:
        return _fatal(USAGE)

    command_name, *command_args = args
    command = get_commands().get(command_name)
    if command is None:
        return _fatal("Unknown command.")

    db = _LazyDatabase(cfg.db_url)
    state = State(db=db, cfg=cfg)
    try:
        command.callback(state, *command_args)
    except Exception as err:  # every command failure ends the program the same way
        return _fatal(f"Error executing command: {err}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())