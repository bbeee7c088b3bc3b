# Overview: In-process change notifications for committed table writes.

"""
Change Feed

Push-based invalidation for views that must refresh when data changes
underneath them (the admin user directory).

- SQLAlchemy session events record which tables a flush touched.
- After the transaction commits, one notification per table is published to
  every subscriber of that table. Rolled-back changes are never published.
- Subscribers hold a bounded queue. A full queue drops the notification: the
  one already queued triggers the same refresh.
- Subscriptions must be closed (use them as context managers).

Scope: a single process. Multi-worker deployments see only their own writes.
"""

from __future__ import annotations

import queue
import threading
from collections import defaultdict

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from pricebook.time_utils import utcnow, to_utc_z

_PENDING_KEY = "pricebook_changed_tables"


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, maxsize: int = 100):
        self.feed = feed
        self.table = table
        self.queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.closed = False

    def deliver(self, notification: dict) -> None:
        try:
            self.queue.put_nowait(notification)
        except queue.Full:
            pass

    def get(self, timeout: float | None = None) -> dict | None:
        """Next notification, or None when timeout elapses."""
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, table: str) -> Subscription:
        sub = Subscription(self, table)
        with self._lock:
            self._subscribers[table].append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscribers.get(table, []))

    def publish(self, table: str, changed_at: str | None = None) -> int:
        """Deliver a notification to every subscriber of table. Returns the count."""
        notification = {"table": table, "changed_at": changed_at or to_utc_z(utcnow())}
        with self._lock:
            subs = list(self._subscribers.get(table, []))
        for sub in subs:
            sub.deliver(notification)
        return len(subs)


feed = ChangeFeed()


def _table_name(obj) -> str | None:
    mapper = inspect(obj).mapper
    table = getattr(mapper, "local_table", None)
    return getattr(table, "name", None)


def _collect_changes(session, flush_context) -> None:
    pending = session.info.setdefault(_PENDING_KEY, set())
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        name = _table_name(obj)
        if name:
            pending.add(name)


def _publish_changes(session) -> None:
    tables = session.info.pop(_PENDING_KEY, None)
    if not tables:
        return
    changed_at = to_utc_z(utcnow())
    for table in sorted(tables):
        feed.publish(table, changed_at)


def _discard_changes(session) -> None:
    session.info.pop(_PENDING_KEY, None)


def install() -> None:
    """Attach the session listeners (idempotent)."""
    if not event.contains(Session, "after_flush", _collect_changes):
        event.listen(Session, "after_flush", _collect_changes)
        event.listen(Session, "after_commit", _publish_changes)
        event.listen(Session, "after_rollback", _discard_changes)
