"""View models shared by the player and admin pages and their socket pushes."""
from __future__ import annotations

from typing import Any, Dict, List

from floortower.models import FLOORS
from floortower.services.countdown import DerivedTimers

# Top of the tower first
BOARD_ORDER = tuple(reversed(FLOORS))

HEADLINES = {
    'player': ('GAME ON!', 'GAME OVER!'),
    'admin': ('Running', 'Standby'),
}


def floor_label(floor: int) -> str:
    return 'G / F' if floor == 0 else f"{floor} / F"


def button_label(floor: int) -> str:
    return 'G' if floor == 0 else str(floor)


def floor_board(state) -> List[Dict[str, Any]]:
    """Ten cells, floor 9 down to floor 0. A cell is lit only while the game runs."""
    running = bool(state and state.is_running)
    active = state.active_floors if state else frozenset()
    return [
        {'floor': f, 'label': floor_label(f), 'active': running and f in active}
        for f in BOARD_ORDER
    ]


def floor_buttons(state) -> List[Dict[str, Any]]:
    active = state.active_floors if state else frozenset()
    return [
        {'floor': f, 'label': button_label(f), 'active': f in active}
        for f in BOARD_ORDER
    ]


def headline(state, view: str = 'player') -> str:
    on, off = HEADLINES[view]
    return on if state and state.is_running else off


def render(state, timers: DerivedTimers, view: str = 'player') -> Dict[str, Any]:
    """Payload pushed on every state change: raw state plus what the page shows."""
    payload = {
        'state': state.to_dict() if state else None,
        'headline': headline(state, view),
        'board': floor_board(state),
        'timers': timers.to_dict(),
        'broadcast_message': state.broadcast_message if state else '',
    }
    if view == 'admin':
        payload['buttons'] = floor_buttons(state)
    return payload
