from pathlib import Path

import pytest

from quotabar.cli import parse_args


class TestParseArgs:
    def test_defaults(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.delenv("QUOTABAR_CREDENTIALS_PATH", raising=False)
        config = parse_args([])
        assert config.poll_interval == 60
        assert config.log_level == "info"
        assert config.log_format == "console"
        assert config.listen_address == ""
        assert config.watch_credentials is True

    def test_overrides(self, tmp_path: "Path") -> "None":
        config = parse_args(
            [
                "--poll.interval",
                "120",
                "--credentials.path",
                str(tmp_path / "creds.json"),
                "--no-watch",
                "--web.listen-address",
                ":9185",
                "--log.format",
                "json",
            ]
        )
        assert config.poll_interval == 120
        assert config.credentials_path == tmp_path / "creds.json"
        assert config.watch_credentials is False
        assert config.listen_address == ":9185"
        assert config.log_format == "json"

    @pytest.mark.parametrize("value", ["5", "601", "abc"])
    def test_rejects_invalid_interval(self, value: "str") -> "None":
        with pytest.raises(SystemExit):
            parse_args(["--poll.interval", value])
