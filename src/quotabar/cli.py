import argparse
from pathlib import Path

from quotabar.config import (
    MAX_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
    Config,
    validate_poll_interval,
)
from quotabar.errors import IntervalOutOfRange


def _poll_interval(value: "str") -> "int":
    try:
        return validate_poll_interval(int(value))
    except (ValueError, IntervalOutOfRange) as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def parse_args(argv: "list[str] | None" = None) -> "Config":
    config = Config.from_env()

    parser = argparse.ArgumentParser(
        prog="quotabar",
        description="Background usage/quota poller for desktop status widgets",
    )
    parser.add_argument(
        "--poll.interval",
        dest="poll_interval",
        type=_poll_interval,
        default=config.poll_interval,
        help=(
            f"Polling interval in seconds, {MIN_POLL_INTERVAL}-{MAX_POLL_INTERVAL} "
            f"(default: {config.poll_interval})"
        ),
    )
    parser.add_argument(
        "--credentials.path",
        dest="credentials_path",
        type=Path,
        default=config.credentials_path,
        help=f"OAuth credentials file (default: {config.credentials_path})",
    )
    parser.add_argument(
        "--config.path",
        dest="config_path",
        type=Path,
        default=config.config_path,
        help=(
            "Config file with the optional github section "
            f"(default: {config.config_path})"
        ),
    )
    parser.add_argument(
        "--no-watch",
        dest="watch_credentials",
        action="store_false",
        help="Do not refresh when the credentials file changes",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default="",
        help="Address to expose Prometheus metrics on, e.g. :9185 (default: off)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    config.poll_interval = args.poll_interval
    config.credentials_path = args.credentials_path
    config.config_path = args.config_path
    config.watch_credentials = args.watch_credentials
    config.listen_address = args.listen_address
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
