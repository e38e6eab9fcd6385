"""Tests for the command line entry points."""

import json

import pytest

from clientdesk.cli import main


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "clientdesk.yml"
    path.write_text(
        f"storage:\n  data_dir: {tmp_path / 'db'}\n"
        "auth:\n  jwt_secret: cli-secret\n"
        "reminders:\n  enabled: false\n"
    )
    return str(path)


class TestCli:
    def test_remind_cleanup(self, config_file, capsys):
        assert main(["--config", config_file, "remind", "cleanup"]) == 0
        out = capsys.readouterr().out
        assert "cleanup" in out
        assert '"removed": 0' in out

    def test_unknown_job_rejected(self, config_file):
        with pytest.raises(SystemExit):
            main(["--config", config_file, "remind", "nope"])

    def test_stats(self, config_file, capsys):
        assert main(["--config", config_file, "stats"]) == 0
        overview = json.loads(capsys.readouterr().out)
        assert overview["clients"]["total"] == 0
        assert overview["unreadNotifications"] == 0
