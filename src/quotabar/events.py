import threading
from collections import defaultdict
from typing import Any, Callable

import structlog

logger = structlog.get_logger()

USAGE_UPDATE = "usage-update"
TOKEN_STATUS = "token-status"
SECONDARY_ONLY_UPDATE = "secondary-only-update"

Listener = Callable[[Any], None]


class EventEmitter:
    """
    EventEmitter delivers named events to the presentation layer.

    Emission is fire-and-forget: listeners run in registration order and
    a failing listener is logged and skipped, it never reaches the
    emitting fetch cycle.
    """

    def __init__(self) -> "None":
        self._lock: "threading.Lock" = threading.Lock()
        self._listeners: "defaultdict[str, list[Listener]]" = defaultdict(list)

    def subscribe(self, event: "str", listener: "Listener") -> "None":
        with self._lock:
            self._listeners[event].append(listener)

    def unsubscribe(self, event: "str", listener: "Listener") -> "None":
        with self._lock:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

    def emit(self, event: "str", payload: "Any") -> "None":
        with self._lock:
            listeners = list(self._listeners[event])

        logger.debug("event_emitted", event_name=event, listeners=len(listeners))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception("event_listener_error", event_name=event)
