"""Live query subscriptions.

A subscription is an explicit handle owned by whoever opened it. Closing it
releases the underlying Firestore watch; it is safe to close twice and is a
context manager so callers can guarantee release on every exit path.

Firestore invokes snapshot callbacks on its own background thread. Each
delivery is a complete snapshot of the query; it is converted as a whole and
handed to ``on_snapshot``. If conversion or the consumer fails, the failure goes to
``on_error`` instead of escaping into the watch thread.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, TypeVar

from google.api_core import exceptions as gexc

from .errors import StoreError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ErrorHandler = Callable[[Exception], None]


class Subscription:
    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._closed = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _bind(self, unsubscribe: Callable[[], None]) -> None:
        with self._lock:
            if not self._closed:
                self._unsubscribe = unsubscribe
                return
        # Closed before the watch came up.
        unsubscribe()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        logger.debug("subscription_closed", subscription=self.name)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def watch_query(
    query: Any,
    *,
    name: str,
    convert: Callable[[Iterable[Any]], list[T]],
    on_snapshot: Callable[[list[T]], None],
    on_error: ErrorHandler,
) -> Subscription:
    sub = Subscription(name)

    def _deliver(docs: Iterable[Any], _changes: Any, _read_time: Any) -> None:
        if sub.closed:
            return
        try:
            items = convert(docs)
            on_snapshot(items)
        except Exception as exc:
            logger.warning("snapshot_delivery_failed", subscription=name, error=str(exc))
            on_error(exc)

    try:
        watch = query.on_snapshot(_deliver)
    except gexc.GoogleAPIError as exc:
        logger.error("subscription_failed", subscription=name, error=str(exc))
        raise StoreError("watch", str(exc)) from exc

    sub._bind(watch.unsubscribe)
    logger.debug("subscription_opened", subscription=name)
    return sub
