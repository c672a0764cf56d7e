"""Reading and writing the user's JSON configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"


def config_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


@dataclass
class Config:
    """Database URL and the name of the user currently logged in."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def to_json(self) -> dict[str, str]:
        return {"db_url": self.db_url, "current_user_name": self.current_user_name}

    def write(self) -> None:
        """Write the configuration to its file, replacing what was there."""
        target = self.path if self.path is not None else config_path()
        with open(target, "w", encoding="utf-8") as handle:
            json.dump(self.to_json(), handle)
            handle.write("\n")

    def set_user(self, user_name: str) -> None:
        """Record ``user_name`` as the current user and save the file."""
        self.current_user_name = user_name
        self.write()

    def set_db(self, db_url: str) -> None:
        """Record ``db_url`` as the database location and save the file."""
        self.db_url = db_url
        self.write()


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path``, or from the default location.

    Raises ``FileNotFoundError`` if the file is missing and ``ValueError``
    if it does not hold a JSON object with string fields.
    """
    target = Path(path) if path is not None else config_path()
    with open(target, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"{target}: configuration must be a JSON object")
    values: dict[str, str] = {}
    for key in ("db_url", "current_user_name"):
        value = data.get(key)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"{target}: {key!r} must be a string")
        values[key] = value
    return Config(path=target, **values)