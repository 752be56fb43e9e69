"""Client side of the game state feed.

A :class:`StateSyncClient` fetches the singleton once when attached and then
follows the store's change notifications. Local consumers register listener
callbacks; a listener added late only ever sees the most recent snapshot.
"""
from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from floortower.errors import StoreError
from floortower.services.store import TABLE, GameSnapshot, GameStateStore, SubscriptionHandle

logger = logging.getLogger(__name__)

Listener = Callable[[GameSnapshot], None]


class StateSyncClient:
    def __init__(self, store: GameStateStore, table: str = TABLE, name: str = 'sync'):
        self._store = store
        self._table = table
        self.name = name
        self._lock = threading.RLock()
        self._keys = itertools.count(1)
        self._listeners: Dict[int, Listener] = {}
        self._handle: Optional[SubscriptionHandle] = None
        self._latest: Optional[GameSnapshot] = None
        self._attached = False

    @property
    def latest(self) -> Optional[GameSnapshot]:
        return self._latest

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> Optional[GameSnapshot]:
        """Follow pushed updates, then fetch the current snapshot once.

        Subscribing first means a write landing during the fetch still
        arrives as a push, and the fetch is dropped once a push has landed.
        A failed fetch leaves ``latest`` as ``None`` until the next push; nothing is
        retried.
        """
        with self._lock:
            if self._attached:
                return self._latest
            self._attached = True
        try:
            handle = self._store.subscribe_to_updates(self._table, self._on_change)
        except (StoreError, ValueError) as exc:
            logger.warning(f"[sync-attach] {self.name} subscribe failed: {exc}")
            handle = None
        with self._lock:
            if not self._attached:
                # detached while we were subscribing
                if handle is not None:
                    self._store.unsubscribe(handle)
                return self._latest
            self._handle = handle
        try:
            snapshot = self._store.read_singleton()
        except StoreError as exc:
            logger.warning(f"[sync-attach] {self.name} initial fetch failed: {exc}")
        else:
            with self._lock:
                pushed = self._latest is not None
            # any push that beat the fetch is at least as new
            if not pushed:
                self._deliver(snapshot)
        return self._latest

    def detach(self) -> None:
        with self._lock:
            self._attached = False
            handle, self._handle = self._handle, None
        if handle is not None:
            self._store.unsubscribe(handle)
        logger.debug(f"[sync-detach] {self.name}")

    def add_listener(self, listener: Listener) -> int:
        with self._lock:
            key = next(self._keys)
            self._listeners[key] = listener
            current = self._latest
        if current is not None:
            listener(current)
        return key

    def remove_listener(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)

    def _on_change(self, snapshot: GameSnapshot) -> None:
        self._deliver(snapshot)

    def _deliver(self, snapshot: GameSnapshot) -> None:
        with self._lock:
            if not self._attached or self._is_older(snapshot):
                return
            self._latest = snapshot
            listeners = list(self._listeners.values())
        for listener in listeners:
            listener(snapshot)

    def _is_older(self, snapshot: GameSnapshot) -> bool:
        current = self._latest
        if current is None or current.updated_at is None or snapshot.updated_at is None:
            return False
        return snapshot.updated_at < current.updated_at
