"""Admin commands. Each one is a single partial write to the singleton.

Nothing here changes local state: callers see the outcome through the sync
feed like every other view.
"""
from __future__ import annotations

import logging
import math
from datetime import timedelta

from floortower.errors import CommandError
from floortower.models import FLOORS
from floortower.services import countdown

logger = logging.getLogger(__name__)


def coerce_minutes(value) -> float:
    """Duration input -> minutes. Anything unusable counts as 0 (already expired)."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(minutes):
        return 0.0
    return minutes


def _deadline(duration_minutes):
    try:
        return countdown.utcnow() + timedelta(minutes=coerce_minutes(duration_minutes))
    except OverflowError:
        raise CommandError(f"duration out of range: {duration_minutes!r}") from None


def start_game(store, duration_minutes):
    logger.info(f"[command] start_game minutes={duration_minutes!r}")
    return store.update_singleton({
        'is_running': True,
        'end_time': _deadline(duration_minutes),
        'floor_is_running': False,
    })


def start_floor_countdown(store, duration_minutes):
    logger.info(f"[command] start_floor_countdown minutes={duration_minutes!r}")
    return store.update_singleton({
        'floor_is_running': True,
        'floor_end_time': _deadline(duration_minutes),
    })


def toggle_floor(store, cached_state, floor):
    """Flip one floor relative to the caller's cached view of the state.

    This is a read-modify-write on the cached copy; two admins toggling from
    the same stale snapshot overwrite each other and the last write wins.
    """
    if cached_state is None:
        raise CommandError('game state not loaded yet')
    if isinstance(floor, bool) or not isinstance(floor, int) or floor not in FLOORS:
        raise CommandError(f"invalid floor {floor!r}; floors are 0-9")
    floors = set(cached_state.active_floors) ^ {floor}
    logger.info(f"[command] toggle_floor floor={floor} -> {sorted(floors)}")
    return store.update_singleton({'active_floors': sorted(floors)})


def reset_game(store):
    logger.info("[command] reset_game")
    return store.update_singleton({
        'is_running': False,
        'floor_is_running': False,
        'active_floors': [],
        'broadcast_message': '',
    })


def broadcast(store, text):
    if not isinstance(text, str):
        raise CommandError('broadcast text must be a string')
    logger.info(f"[command] broadcast length={len(text)}")
    return store.update_singleton({'broadcast_message': text})
