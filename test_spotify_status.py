"""
Unit tests for spotify_status.py
Tests the run entry point (config handling, exit codes, log trimming)
"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from reconciler import RunOutcome
from spotify_status import main, parse_args


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No user config, no CONFIG_PATH from the outside"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    with patch("config_store.Path.home", return_value=home), patch("spotify_status.load_dotenv"):
        yield


@pytest.fixture
def workdir(tmp_path):
    d = tmp_path / "work"
    d.mkdir()
    return d


def write_config(workdir, **extra):
    payload = {"slackToken": "xoxp-test", **extra}
    (workdir / "config.local.json").write_text(json.dumps(payload), encoding="utf-8")


class TestParseArgs:
    """Tests for parse_args()"""

    def test_defaults(self):
        args = parse_args([])
        assert args.config is None
        assert args.workdir is None
        assert args.debug is False

    def test_flags(self):
        args = parse_args(["--config", "c.json", "--workdir", "/tmp", "--debug"])
        assert (args.config, args.workdir, args.debug) == ("c.json", "/tmp", True)


class TestMain:
    """Tests for main()"""

    def test_missing_config_exits_1(self, workdir):
        with patch("spotify_status.run_once", new_callable=AsyncMock) as run_once:
            assert main(["--workdir", str(workdir)]) == 1
        run_once.assert_not_called()

    def test_invalid_config_exits_1(self, workdir):
        write_config(workdir, statusTtlSeconds=-5)
        assert main(["--workdir", str(workdir)]) == 1

    def test_normal_run_exits_0(self, workdir):
        write_config(workdir)
        with patch("spotify_status.run_once", new_callable=AsyncMock, return_value=RunOutcome.NOT_PLAYING) as run_once:
            assert main(["--workdir", str(workdir)]) == 0
        config, passed_workdir = run_once.call_args[0]
        assert config.slack_token == "xoxp-test"
        assert passed_workdir == workdir.resolve()

    def test_config_flag(self, workdir, tmp_path):
        custom = tmp_path / "custom.json"
        custom.write_text(json.dumps({"slackToken": "xoxp-custom"}), encoding="utf-8")
        with patch("spotify_status.run_once", new_callable=AsyncMock, return_value=RunOutcome.UPDATED) as run_once:
            assert main(["--workdir", str(workdir), "--config", str(custom)]) == 0
        assert run_once.call_args[0][0].slack_token == "xoxp-custom"

    def test_crash_exits_1(self, workdir):
        write_config(workdir)
        with patch("spotify_status.run_once", new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            assert main(["--workdir", str(workdir)]) == 1

    def test_logs_trimmed_before_run(self, workdir):
        write_config(workdir, logMaxLines=10, logKeepLines=2)
        log_file = workdir / "spotify-status.log"
        log_file.write_text("".join(f"{i}\n" for i in range(20)), encoding="utf-8")
        with patch("spotify_status.run_once", new_callable=AsyncMock, return_value=RunOutcome.NOT_PLAYING):
            main(["--workdir", str(workdir)])
        assert log_file.read_text() == "18\n19\n"
