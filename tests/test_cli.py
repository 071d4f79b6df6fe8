"""Unit tests for the command line front end."""
import pytest

from unifyer_calendar import main

from conftest import LOCAL_TZ_NAME, SAMPLE_ICS


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        f'[General]\nstorage_dir = "{(tmp_path / "data").as_posix()}"\ntimezone = "{LOCAL_TZ_NAME}"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def calendar_file(tmp_path):
    path = tmp_path / "semester.ics"
    path.write_text(SAMPLE_ICS, encoding="utf-8")
    return path


def run_cli(*args):
    with pytest.raises(SystemExit) as excinfo:
        main([str(a) for a in args])
    return excinfo.value.code


class TestCli:
    """Test cases for unifyer-calendar commands."""

    def test_import_then_list(self, config_path, calendar_file, capsys):
        assert run_cli("-c", config_path, "import", calendar_file) == 0
        assert "Imported 2 events!" in capsys.readouterr().out

        assert run_cli("-c", config_path, "events", "--from", "2025-05-23") == 0
        out = capsys.readouterr().out
        assert "Lecture" in out
        assert "Midterm, Calc III" not in out

    def test_month_view(self, config_path, calendar_file, capsys):
        run_cli("-c", config_path, "import", calendar_file)
        capsys.readouterr()

        assert run_cli("-c", config_path, "month", "2025-05") == 0

        out = capsys.readouterr().out
        assert "Thu 22" in out
        assert "2025-05-22        Midterm, Calc III  [imported]  @ Main Hall A" in out

    def test_import_wrong_extension(self, config_path, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text(SAMPLE_ICS, encoding="utf-8")

        assert run_cli("-c", config_path, "import", path) == 1
        assert "Please upload a valid iCal file" in capsys.readouterr().err

    def test_unknown_subscription(self, config_path, capsys):
        assert run_cli("-c", config_path, "unsubscribe", "sub_missing") == 1
        assert run_cli("-c", config_path, "sync", "sub_missing") == 1

    def test_sync_without_subscriptions(self, config_path):
        assert run_cli("-c", config_path, "sync") == 0

    def test_missing_config(self, tmp_path, capsys):
        assert run_cli("-c", tmp_path / "missing.toml", "subscriptions") == 1
        assert "Example configuration" in capsys.readouterr().err
