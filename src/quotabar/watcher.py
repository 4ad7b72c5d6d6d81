import queue
import threading
from pathlib import Path
from typing import Callable

import structlog
from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 1.0

_STOP = object()


class _RawEventHandler(FileSystemEventHandler):
    """
    forwards file create/modify notifications from the observer thread
    into the watcher's private queue.
    """

    def __init__(self, events: "queue.Queue[object]") -> "None":
        super().__init__()
        self._events = events

    def on_any_event(self, event: "FileSystemEvent") -> "None":
        if isinstance(event, (FileCreatedEvent, FileModifiedEvent)):
            self._events.put(event.src_path)


class CredentialWatcher:
    """
    CredentialWatcher observes the directory that holds the credential
    file and calls on_change once per burst of changes.

    The refreshing process rewrites the file in several small writes, so
    after the first raw event the watcher keeps draining events until
    none arrived for debounce_seconds and only then calls on_change. If
    the watch cannot be established the watcher stays disabled for the
    rest of the process; polling continues without it.
    """

    def __init__(
        self,
        path: "Path",
        on_change: "Callable[[], None]",
        debounce_seconds: "float" = DEFAULT_DEBOUNCE_SECONDS,
    ) -> "None":
        self._path = Path(path)
        self._on_change = on_change
        self._debounce_seconds = debounce_seconds
        self._events: "queue.Queue[object]" = queue.Queue()
        self._observer: "Observer | None" = None
        self._thread: "threading.Thread | None" = None
        self._disabled = False

    @property
    def enabled(self) -> "bool":
        return self._thread is not None and not self._disabled

    def start(self) -> "bool":
        """
        starts watching. Returns False, after logging the reason, when
        the watch cannot be established.
        """
        if self._disabled or self._thread is not None:
            return self.enabled

        directory = self._path.parent
        if not directory.is_dir():
            logger.error(
                "credentials_watch_failed",
                path=str(directory),
                error="not a directory",
            )
            self._disabled = True
            return False

        observer = Observer()
        try:
            observer.schedule(
                _RawEventHandler(self._events), str(directory), recursive=False
            )
            observer.start()
        except OSError as e:
            logger.error(
                "credentials_watch_failed", path=str(directory), error=str(e)
            )
            self._disabled = True
            return False

        self._observer = observer
        self._thread = threading.Thread(
            target=self._debounce_loop,
            name="quotabar-credentials-watcher",
            daemon=True,
        )
        self._thread.start()
        logger.info("credentials_watch_started", path=str(self._path))
        return True

    def stop(self) -> "None":
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        if self._thread is not None:
            self._events.put(_STOP)
            self._thread.join()
            self._thread = None

    def notify(self, src_path: "str" = "") -> "None":
        """
        feeds one raw change event into the debounce window.
        """
        self._events.put(src_path)

    def _debounce_loop(self) -> "None":
        while True:
            item = self._events.get()
            if item is _STOP:
                return

            # drain the rest of the burst
            while True:
                try:
                    item = self._events.get(timeout=self._debounce_seconds)
                except queue.Empty:
                    break
                if item is _STOP:
                    return

            logger.info("credentials_changed", path=str(self._path))
            try:
                self._on_change()
            except Exception:
                logger.exception("credentials_change_callback_error")
