import json
import math
import os
from dataclasses import dataclass, field
from pathlib import Path

from quotabar.credentials import DEFAULT_CREDENTIALS_PATH
from quotabar.errors import ConfigInvalid, IntervalOutOfRange

DEFAULT_CONFIG_PATH = Path.home() / ".quotabar" / "config.json"

# accepted polling interval bounds in seconds, inclusive. A zero or
# negative interval would busy-loop the coordinator.
MIN_POLL_INTERVAL = 10
MAX_POLL_INTERVAL = 600

DEFAULT_MONTHLY_LIMIT = 300.0


def validate_poll_interval(seconds: "int") -> "int":
    """
    returns seconds unchanged when it is an integer within
    [MIN_POLL_INTERVAL, MAX_POLL_INTERVAL], raises IntervalOutOfRange
    otherwise.
    """
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise IntervalOutOfRange(
            f"Polling interval must be an integer, got {seconds!r}"
        )
    if not MIN_POLL_INTERVAL <= seconds <= MAX_POLL_INTERVAL:
        raise IntervalOutOfRange(
            f"Polling interval must be between {MIN_POLL_INTERVAL} "
            f"and {MAX_POLL_INTERVAL} seconds"
        )
    return seconds


@dataclass
class Config:
    # polling interval in seconds
    poll_interval: "int" = 60
    log_level: "str" = "info"
    # console or json
    log_format: "str" = "console"
    # metrics listen_address: format ":9185" or
    # "127.0.0.1:9185", empty disables the endpoint
    listen_address: "str" = ""
    watch_credentials: "bool" = True

    credentials_path: "Path" = field(default_factory=lambda: DEFAULT_CREDENTIALS_PATH)
    config_path: "Path" = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()
        if os.environ.get("QUOTABAR_CREDENTIALS_PATH"):
            config.credentials_path = Path(os.environ["QUOTABAR_CREDENTIALS_PATH"])
        if os.environ.get("QUOTABAR_CONFIG_PATH"):
            config.config_path = Path(os.environ["QUOTABAR_CONFIG_PATH"])
        return config


@dataclass(frozen=True)
class SecondaryConfig:
    """
    SecondaryConfig carries what the GitHub premium request fetcher
    needs. Its presence in the config file enables the secondary source.
    """

    username: "str"
    token: "str" = field(repr=False)
    monthly_limit: "float" = DEFAULT_MONTHLY_LIMIT

    @classmethod
    def from_dict(cls, data: "dict") -> "SecondaryConfig":
        try:
            username = data["username"]
            token = data["token"]
            monthly_limit = float(data.get("monthly_limit", DEFAULT_MONTHLY_LIMIT))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigInvalid(f"Invalid github config: {e!r}") from e

        if not isinstance(username, str) or not username:
            raise ConfigInvalid("github.username must be a non-empty string")
        if not isinstance(token, str) or not token:
            raise ConfigInvalid("github.token must be a non-empty string")
        # utilization divides by the limit. json accepts NaN and Infinity
        if not math.isfinite(monthly_limit) or monthly_limit <= 0:
            raise ConfigInvalid(
                f"github.monthly_limit must be a positive number, got {monthly_limit}"
            )
        return cls(username=username, token=token, monthly_limit=monthly_limit)


def load_secondary_config(path: "Path" = DEFAULT_CONFIG_PATH) -> "SecondaryConfig | None":
    """
    reads the optional secondary source config. A missing file or a file
    without a github section means the secondary source is disabled.
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigInvalid(f"Failed to read config: {e}") from e
    except ValueError as e:
        raise ConfigInvalid(f"Failed to parse config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigInvalid("Config root must be a JSON object")

    github = data.get("github")
    if github is None:
        return None
    if not isinstance(github, dict):
        raise ConfigInvalid("github section must be a JSON object")
    return SecondaryConfig.from_dict(github)
