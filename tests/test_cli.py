import json

import pytest

from gatorfeed.cli import main


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


def write_config(home, db_url, user=""):
    path = home / ".gatorconfig.json"
    path.write_text(json.dumps({"db_url": db_url, "current_user_name": user}), encoding="utf-8")
    return path


def read_back(home):
    return json.loads((home / ".gatorconfig.json").read_text(encoding="utf-8"))


@pytest.fixture
def configured(home):
    write_config(home, str(home / "feeds.db"))
    return home


def test_missing_config_is_an_error(home, capsys):
    assert main(["help"]) == 1
    assert "Error reading config" in capsys.readouterr().err


def test_no_command_prints_usage(configured, capsys):
    assert main([]) == 1
    assert "Usage: cli <command> [args...]" in capsys.readouterr().err


def test_unknown_command(configured, capsys):
    assert main(["nonsense"]) == 1
    assert "Unknown command." in capsys.readouterr().err


def test_help_lists_commands(configured, capsys):
    assert main(["help"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("-- HELP --")
    assert "register\t\tRegister new user in database" in out


def test_register_sets_current_user(configured, capsys):
    assert main(["register", "alice"]) == 0
    assert read_back(configured)["current_user_name"] == "alice"
    assert main(["register", "bob"]) == 0
    assert main(["login", "alice"]) == 0
    capsys.readouterr()
    assert main(["users"]) == 0
    out = capsys.readouterr().out
    assert " * alice (current)" in out
    assert " * bob\n" in out


def test_login_unknown_user_fails(configured, capsys):
    assert main(["login", "nobody"]) == 1
    assert "Error executing command" in capsys.readouterr().err
    assert read_back(configured)["current_user_name"] == ""


def test_dburl_works_without_a_database(home, capsys):
    write_config(home, "")
    target = str(home / "other.db")
    assert main(["dburl", target]) == 0
    assert read_back(home)["db_url"] == target
    assert target in capsys.readouterr().out


def test_query_without_database_url_fails(home, capsys):
    write_config(home, "")
    assert main(["users"]) == 1
    assert "Error executing command" in capsys.readouterr().err


def test_addfeed_then_following(configured, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["addfeed", "News", "http://feeds.example.com/rss"]) == 0
    capsys.readouterr()
    assert main(["following"]) == 0
    assert "\t* News" in capsys.readouterr().out
    assert main(["unfollow", "http://feeds.example.com/rss"]) == 0
    capsys.readouterr()
    assert main(["following"]) == 0
    assert "You are not following any feeds. Add some!" in capsys.readouterr().out


def test_addfeed_needs_two_arguments(configured, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["addfeed", "News"]) == 1
    assert "requires 2 arguments" in capsys.readouterr().err


def test_reset_removes_users(configured, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["reset"]) == 0
    capsys.readouterr()
    assert main(["users"]) == 1
    assert "no users" in capsys.readouterr().err


def test_browse_rejects_non_integer(configured, capsys):
    assert main(["register", "alice"]) == 0
    assert main(["browse", "many"]) == 1
    assert "Error executing command" in capsys.readouterr().err


def test_logged_in_command_without_user_fails(configured, capsys):
    assert main(["following"]) == 1
    assert "Error executing command" in capsys.readouterr().err