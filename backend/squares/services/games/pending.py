"""Pending square picks: squares a player is considering but has not confirmed.

The ledger is advisory. It lets polling clients see cells other players are
eyeing so fewer confirms collide; correctness of ownership is enforced only by
the claim arbiter against stored squares. Entries expire after a short lease
so an abandoned browser tab cannot hold a cell forever.
"""

import abc
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Tuple

from flask import current_app

from .codes import parse_cells
from .queries import load_game, load_player

Cell = Tuple[int, int]


@dataclass(frozen=True)
class PendingSelection:
    game_code: str
    player_id: int
    row: int
    col: int
    timestamp: float

    def to_dict(self):
        return {
            'gameId': self.game_code,
            'playerId': self.player_id,
            'row': self.row,
            'col': self.col,
            'timestamp': self.timestamp,
        }


class PendingLedger(abc.ABC):
    """Interface for pending-pick storage, partitioned by game code."""

    @abc.abstractmethod
    def set_pending(self, game_code: str, player_id: int, cells: Iterable[Cell]) -> List[PendingSelection]:
        """Replace the player's picks for a game; returns the game's live picks."""

    @abc.abstractmethod
    def list_pending(self, game_code: str) -> List[PendingSelection]:
        """Return the game's unexpired picks, evicting expired ones."""

    @abc.abstractmethod
    def clear_pending(self, game_code: str, player_id: int) -> None:
        """Drop every pick the player holds in the game."""


class InMemoryPendingLedger(PendingLedger):
    """Process-local ledger. A restart simply forgets all in-flight picks."""

    def __init__(self, ttl_seconds: float = 30, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, List[PendingSelection]] = {}
        # A game's lock lives only while some caller holds it
        self._locks = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, game_code: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(game_code)
            if lock is None:
                lock = self._locks[game_code] = threading.Lock()
            return lock

    def _live(self, game_code: str, now: float) -> List[PendingSelection]:
        # Caller holds the game lock
        live = [e for e in self._entries.get(game_code, []) if now - e.timestamp < self.ttl_seconds]
        if live:
            self._entries[game_code] = live
        else:
            self._entries.pop(game_code, None)
        return live

    def set_pending(self, game_code, player_id, cells):
        with self._lock_for(game_code):
            now = self._clock()
            others = [e for e in self._live(game_code, now) if e.player_id != player_id]
            mine = []
            seen = set()
            for row, col in cells:
                if (row, col) in seen:
                    continue
                seen.add((row, col))
                mine.append(PendingSelection(game_code, player_id, row, col, now))
            entries = others + mine
            if entries:
                self._entries[game_code] = entries
            else:
                self._entries.pop(game_code, None)
            return list(entries)

    def list_pending(self, game_code):
        with self._lock_for(game_code):
            return list(self._live(game_code, self._clock()))

    def clear_pending(self, game_code, player_id):
        with self._lock_for(game_code):
            remaining = [e for e in self._entries.get(game_code, []) if e.player_id != player_id]
            if remaining:
                self._entries[game_code] = remaining
            else:
                self._entries.pop(game_code, None)


def get_ledger() -> PendingLedger:
    return current_app.extensions['pending_ledger']


def set_pending_squares(game_code, email, cells) -> List[PendingSelection]:
    """Replace the player's pending picks; returns every live pick in the game."""
    game = load_game(game_code)
    player = load_player(game, email)
    return get_ledger().set_pending(game.game_code, player.id, parse_cells(cells))


def get_pending_squares(game_code) -> List[PendingSelection]:
    game = load_game(game_code)
    return get_ledger().list_pending(game.game_code)
