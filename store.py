"""Keyed storage for ride requests.

Every record is stored under its rider id, so a rider has at most one ride
request at a time. Writes to a key are serialized by a named lock from
``db.get_lock`` and conditional writes are issued as a single
``UPDATE ... WHERE status = :expected`` so two drivers cannot both claim the
same request.

Subscribers are notified from a single notifier thread: writers only enqueue,
and notifications leave the queue in the order the writes happened.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

import db
from config import STORE_TIMEOUT_SECONDS
from errors import Conflict, NotFound, StoreTimeout, StoreUnavailable
from models import RideRequest, RideStatus

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[RideRequest]], Any]


class Subscription:
    """Handle returned by ``RideRequestStore.subscribe``.

    Once ``cancel()`` returns the callback is never invoked again. A callback
    that is running while another thread cancels finishes first.
    """

    def __init__(self, store: "RideRequestStore", rider_id: str, callback: Callback):
        self.rider_id = rider_id
        self._store = store
        self._callback = callback
        self._lock = threading.RLock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, record: Optional[RideRequest]):
        with self._lock:
            if not self._active:
                return
            try:
                self._callback(record)
            except Exception:
                logger.exception("Subscriber for ride request %s failed", self.rider_id)

    def cancel(self):
        with self._lock:
            self._active = False
        self._store._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.cancel()


class RideRequestStore:
    def __init__(self, session_factory=None, timeout: Optional[float] = None):
        self._session_factory = session_factory or db.get_session
        self.timeout = STORE_TIMEOUT_SECONDS if timeout is None else timeout
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._subscribers_lock = threading.Lock()
        self._notifier = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ride-notify")
        self._closed = False

    @contextmanager
    def _locked(self, rider_id: str):
        lock = db.get_lock(f"ride-request:{rider_id}")
        if not lock.acquire(timeout=self.timeout):
            raise StoreTimeout(
                "Timed out waiting for the ride request store",
                details=f"ride request {rider_id} stayed locked for {self.timeout}s",
            )
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Ride request store error: %s", exc)
            raise StoreUnavailable("Ride request store unavailable", details=str(exc)) from exc
        finally:
            session.close()

    def put(self, rider_id: str, record: RideRequest) -> RideRequest:
        """Insert or fully replace the record stored at ``rider_id``."""
        values = {name: getattr(record, name) for name in RideRequest.model_fields}
        values["rider_id"] = rider_id
        with self._locked(rider_id):
            with self._session() as session:
                stored = session.get(RideRequest, rider_id)
                if stored is None:
                    stored = RideRequest(**values)
                    session.add(stored)
                else:
                    # full replace: fields missing from the new record are cleared too
                    for name, value in values.items():
                        setattr(stored, name, value)
                session.commit()
                session.refresh(stored)
            self._publish(rider_id, stored)
        return stored

    def get(self, rider_id: str) -> Optional[RideRequest]:
        with self._session() as session:
            return session.get(RideRequest, rider_id)

    def list_where(self, status) -> List[RideRequest]:
        """Snapshot of every record currently in ``status``, oldest first."""
        with self._session() as session:
            statement = (
                select(RideRequest)
                .where(RideRequest.status == RideStatus(status).value)
                .order_by(RideRequest.timestamp)
            )
            return list(session.exec(statement).all())

    def update(self, rider_id: str, fields: Dict[str, Any], expected_status=None) -> RideRequest:
        """Merge ``fields`` into the existing record.

        With ``expected_status`` the write only happens if the record still has
        that status; otherwise ``Conflict`` is raised and nothing is written.
        """
        with self._locked(rider_id):
            with self._session() as session:
                statement = update(RideRequest).where(RideRequest.rider_id == rider_id)
                if expected_status is not None:
                    statement = statement.where(RideRequest.status == RideStatus(expected_status).value)
                result = session.exec(statement.values(**fields))
                if result.rowcount == 0:
                    current = session.get(RideRequest, rider_id)
                    if current is None:
                        raise NotFound("Ride request not found.")
                    raise Conflict(
                        f"Ride request is {current.status}, expected {RideStatus(expected_status).value}.",
                        current_status=current.status,
                    )
                session.commit()
                stored = session.get(RideRequest, rider_id)
            self._publish(rider_id, stored)
        return stored

    def subscribe(self, rider_id: str, callback: Callback) -> Subscription:
        """Call ``callback`` with the current record (or None), then on every write.

        Callbacks run on the notifier thread and must not call ``drain()``.
        Records handed to callbacks are shared between subscribers; treat them
        as read-only.
        """
        subscription = Subscription(self, rider_id, callback)
        with self._locked(rider_id):
            with self._subscribers_lock:
                self._subscribers.setdefault(rider_id, []).append(subscription)
            current = self.get(rider_id)
            self._notify(subscription, current)
        return subscription

    def _remove(self, subscription: Subscription):
        with self._subscribers_lock:
            subscribers = self._subscribers.get(subscription.rider_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.rider_id, None)

    def _publish(self, rider_id: str, record: Optional[RideRequest]):
        with self._subscribers_lock:
            subscribers = list(self._subscribers.get(rider_id, ()))
        for subscription in subscribers:
            self._notify(subscription, record)

    def _notify(self, subscription: Subscription, record: Optional[RideRequest]):
        if self._closed:
            return
        self._notifier.submit(subscription.deliver, record)

    def drain(self, timeout: Optional[float] = None):
        """Block until every notification queued so far has been delivered."""
        if self._closed:
            return
        self._notifier.submit(lambda: None).result(timeout=timeout)

    def close(self):
        self._closed = True
        self._notifier.shutdown(wait=True)
