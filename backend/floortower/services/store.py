"""Game state store: the singleton row and its change feed.

The store is the only writer of the ``game_state`` row. Every committed
update is published to the subscribers of the table as a full
:class:`GameSnapshot`, never as a diff. Subscribers are plain callables kept
in an in-process registry, so notifications only reach consumers living in
the same server process.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Optional

from sqlalchemy.exc import SQLAlchemyError

from floortower.errors import StateNotFound, StoreUnavailable, WriteRejected
from floortower.models import FLOORS, SINGLETON_ID, GameState, utc

logger = logging.getLogger(__name__)

TABLE = GameState.__tablename__


@dataclass(frozen=True)
class GameSnapshot:
    id: int
    is_running: bool = False
    end_time: Optional[datetime] = None
    floor_is_running: bool = False
    floor_end_time: Optional[datetime] = None
    active_floors: FrozenSet[int] = frozenset()
    broadcast_message: str = ''
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: GameState) -> 'GameSnapshot':
        return cls(
            id=row.id,
            is_running=bool(row.is_running),
            end_time=utc(row.end_time),
            floor_is_running=bool(row.floor_is_running),
            floor_end_time=utc(row.floor_end_time),
            active_floors=row.floors,
            broadcast_message=row.broadcast_message or '',
            updated_at=utc(row.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'is_running': self.is_running,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'floor_is_running': self.floor_is_running,
            'floor_end_time': self.floor_end_time.isoformat() if self.floor_end_time else None,
            'active_floors': sorted(self.active_floors),
            'broadcast_message': self.broadcast_message,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class SubscriptionHandle:
    table: str
    key: int


OnChange = Callable[[GameSnapshot], None]


def _coerce_time(name: str, value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return utc(value)
    if isinstance(value, str):
        try:
            return utc(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError:
            raise WriteRejected(f"{name} is not an ISO-8601 timestamp: {value!r}") from None
    raise WriteRejected(f"{name} must be a timestamp, got {type(value).__name__}")


def _coerce_floors(value: Any) -> FrozenSet[int]:
    if isinstance(value, (str, bytes)) or not hasattr(value, '__iter__'):
        raise WriteRejected('active_floors must be a list of floor numbers')
    floors = set()
    for f in value:
        if isinstance(f, bool) or not isinstance(f, int) or f not in FLOORS:
            raise WriteRejected(f"invalid floor {f!r}; floors are 0-9")
        floors.add(f)
    return frozenset(floors)


def _coerce(name: str, value: Any) -> Any:
    if name in ('is_running', 'floor_is_running'):
        if not isinstance(value, bool):
            raise WriteRejected(f"{name} must be true or false")
        return value
    if name in ('end_time', 'floor_end_time'):
        return _coerce_time(name, value)
    if name == 'active_floors':
        return _coerce_floors(value)
    if not isinstance(value, str):
        raise WriteRejected('broadcast_message must be a string')
    return value


class GameStateStore:
    def __init__(self, db, state_id: int = SINGLETON_ID):
        self._db = db
        self.state_id = state_id
        self._lock = threading.Lock()
        self._keys = itertools.count(1)
        self._subscribers: Dict[str, Dict[int, OnChange]] = {TABLE: {}}

    # ---- rows ----

    def _row(self) -> GameState:
        row = self._db.session.get(GameState, self.state_id, populate_existing=True)
        if row is None:
            raise StateNotFound(f"game state {self.state_id} does not exist")
        return row

    def ensure_singleton(self) -> bool:
        """Create the singleton row if missing. Returns True when it was created."""
        if self._db.session.get(GameState, self.state_id) is not None:
            return False
        row = GameState(id=self.state_id, is_running=False, floor_is_running=False,
                        active_floors='[]', broadcast_message='')
        row.touch()
        self._db.session.add(row)
        self._db.session.commit()
        logger.info(f"[store-seed] created game state id={self.state_id}")
        return True

    def read_singleton(self) -> GameSnapshot:
        try:
            return GameSnapshot.from_row(self._row())
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise StoreUnavailable(str(exc)) from exc

    def update_singleton(self, partial: Dict[str, Any]) -> GameSnapshot:
        """Apply a partial update and publish the resulting full state."""
        if not partial:
            raise WriteRejected('empty update')
        unknown = sorted(set(partial) - set(GameState.WRITABLE))
        if unknown:
            raise WriteRejected(f"unknown fields: {', '.join(unknown)}")
        values = {name: _coerce(name, value) for name, value in partial.items()}

        try:
            row = self._row()
            for name, value in values.items():
                if name == 'active_floors':
                    row.floors = value
                else:
                    setattr(row, name, value)
            row.touch()
            self._db.session.add(row)
            self._db.session.commit()
            snapshot = GameSnapshot.from_row(row)
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise WriteRejected(str(exc)) from exc

        logger.info(f"[store-update] id={self.state_id} fields={sorted(values)}")
        self._publish(TABLE, snapshot)
        return snapshot

    # ---- change feed ----

    def subscribe_to_updates(self, table: str, on_change: OnChange) -> SubscriptionHandle:
        with self._lock:
            if table not in self._subscribers:
                raise ValueError(f"unknown table {table!r}")
            handle = SubscriptionHandle(table, next(self._keys))
            self._subscribers[table][handle.key] = on_change
        logger.debug(f"[store-subscribe] table={table} key={handle.key}")
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        with self._lock:
            self._subscribers.get(handle.table, {}).pop(handle.key, None)
        logger.debug(f"[store-unsubscribe] table={handle.table} key={handle.key}")

    def subscriber_count(self, table: str = TABLE) -> int:
        with self._lock:
            return len(self._subscribers.get(table, {}))

    def _publish(self, table: str, snapshot: GameSnapshot) -> None:
        # Iterate a copy so callbacks may (un)subscribe while we deliver
        with self._lock:
            callbacks = list(self._subscribers.get(table, {}).items())
        for key, callback in callbacks:
            try:
                callback(snapshot)
            except Exception:
                logger.exception(f"[store-publish] subscriber key={key} failed")
