import asyncio
import functools
import signal
from typing import Any, Callable

import structlog
from prometheus_client import start_http_server

from quotabar.cli import parse_args
from quotabar.config import load_secondary_config
from quotabar.coordinator import PollingCoordinator
from quotabar.credentials import CredentialReader
from quotabar.events import (
    SECONDARY_ONLY_UPDATE,
    TOKEN_STATUS,
    USAGE_UPDATE,
    EventEmitter,
)
from quotabar.logging import setup_logging
from quotabar.metrics import MetricsUpdater
from quotabar.provider.anthropic import AnthropicUsageFetcher
from quotabar.provider.github import GitHubPremiumRequestFetcher
from quotabar.state import SharedState
from quotabar.watcher import CredentialWatcher

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9185' or '127.0.0.1:9185'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _log_listener(event: "str") -> "Callable[[Any], None]":
    """
    builds a listener that writes an emitted event to the log, standing
    in for a presentation layer when running headless.
    """

    def _listener(payload: "Any") -> "None":
        if hasattr(payload, "to_dict"):
            payload = payload.to_dict()
        elif hasattr(payload, "value"):
            payload = payload.value
        logger.info("event", event_name=event, payload=payload)

    return _listener


def _install_signal_handlers(
    loop: "asyncio.AbstractEventLoop", coordinator: "PollingCoordinator"
) -> "None":
    # for SIGINT and SIGTERM, signal the coordinator
    # to stop gracefully, SIGHUP forces a refresh
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, coordinator.stop)
    # no SIGHUP on Windows
    if hasattr(signal, "SIGHUP"):
        loop.add_signal_handler(signal.SIGHUP, coordinator.request_immediate_refresh)


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, config.log_format)

    emitter = EventEmitter()
    for event in (USAGE_UPDATE, TOKEN_STATUS, SECONDARY_ONLY_UPDATE):
        emitter.subscribe(event, _log_listener(event))

    primary = AnthropicUsageFetcher()
    secondary = GitHubPremiumRequestFetcher()
    coordinator = PollingCoordinator(
        credential_reader=CredentialReader(config.credentials_path),
        primary=primary,
        secondary=secondary,
        emitter=emitter,
        state=SharedState(),
        metrics_updater=MetricsUpdater(),
        secondary_config_loader=functools.partial(
            load_secondary_config, config.config_path
        ),
        interval_seconds=config.poll_interval,
    )

    if config.listen_address:
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    watcher: "CredentialWatcher | None" = None
    if config.watch_credentials:
        watcher = CredentialWatcher(
            config.credentials_path, coordinator.request_immediate_refresh
        )

    async def _run() -> "None":
        _install_signal_handlers(asyncio.get_running_loop(), coordinator)

        if watcher is not None:
            watcher.start()

        try:
            await coordinator.run()
        finally:
            logger.info("shutting_down")
            if watcher is not None:
                watcher.stop()
            await primary.close()
            await secondary.close()
            logger.info("shutdown_complete")

    asyncio.run(_run())


if __name__ == "__main__":
    main()
