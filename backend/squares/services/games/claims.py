"""Claim arbiter: turns a player's picks into permanently owned squares.

Two invariants hold for every game: a cell has at most one owner, and a player
owns at most ``square_limit`` squares. Cell uniqueness is enforced by the
``(game_id, row, col)`` unique constraint; a losing insert surfaces as an
IntegrityError and is reported as SquareTaken. The quota is protected by
locking the player's row for the duration of each claim and re-counting after
the insert, so a burst of confirms from one player cannot overshoot it.

Each cell is claimed in its own transaction. A confirm that fails on its third
cell keeps the first two.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from squares import db
from squares.models import Game, Player, Square
from .codes import parse_cell
from .errors import GameError, InvalidState, QuotaExceeded, SquareTaken, ValidationError, error_for
from .payouts import winning_cell
from .pending import get_ledger
from .queries import load_game, load_player


@dataclass
class Rejection:
    row: Optional[int]
    col: Optional[int]
    code: str
    message: str

    def to_dict(self):
        return {'row': self.row, 'col': self.col, 'code': self.code, 'error': self.message}


@dataclass
class ClaimResult:
    accepted: List[Square] = field(default_factory=list)
    rejected: List[Rejection] = field(default_factory=list)


def _owned_count(game_id: int, player_id: int) -> int:
    return Square.query.filter_by(game_id=game_id, player_id=player_id).count()


def _claim_cell(game_id: int, player_id: int, row: int, col: int) -> Square:
    try:
        # Serializes this player's concurrent claims for the quota check
        Player.query.filter_by(id=player_id).with_for_update().one()
        # Share lock: a concurrent start waits for this claim to finish
        game = (
            Game.query.filter_by(id=game_id)
            .with_for_update(read=True)
            .populate_existing()
            .one()
        )
        if game.status != 'setup':
            raise InvalidState('Game already started; squares are locked')
        limit = game.square_limit
        if _owned_count(game_id, player_id) >= limit:
            raise QuotaExceeded(f'Maximum of {limit} squares per player reached')

        square = Square(game_id=game_id, player_id=player_id, row=row, col=col)
        db.session.add(square)
        db.session.flush()
        if _owned_count(game_id, player_id) > limit:
            raise QuotaExceeded(f'Maximum of {limit} squares per player reached')
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SquareTaken(f'Square ({row}, {col}) is already taken') from None
    except GameError:
        db.session.rollback()
        raise
    return square


def _rejection_for_raw(raw, exc: GameError) -> Rejection:
    # Echo whatever position the caller sent so the failed cell is identifiable
    row = col = None
    if isinstance(raw, dict):
        row, col = raw.get('row'), raw.get('col')
    elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
        row, col = raw[0], raw[1]
    return Rejection(row, col, exc.code, exc.message)


def confirm_squares(game_code, email, cells) -> ClaimResult:
    """Claim each requested cell in order, reporting every cell's outcome.

    Raises for request-level problems (unknown game or player, game not in
    setup, empty request); per-cell failures land in ``rejected``.
    """
    game = load_game(game_code)
    player = load_player(game, email)
    if not isinstance(cells, (list, tuple)) or not cells:
        raise ValidationError('Pick at least one square')
    if game.status != 'setup':
        raise InvalidState('Game already started; squares are locked')

    # Commits below expire ORM state, keep plain values
    game_id, player_id, code = game.id, player.id, game.game_code
    result = ClaimResult()
    for raw in cells:
        try:
            row, col = parse_cell(raw)
        except ValidationError as exc:
            result.rejected.append(_rejection_for_raw(raw, exc))
            continue
        try:
            result.accepted.append(_claim_cell(game_id, player_id, row, col))
        except (InvalidState, QuotaExceeded, SquareTaken) as exc:
            result.rejected.append(Rejection(row, col, exc.code, exc.message))

    if result.accepted:
        get_ledger().clear_pending(code, player_id)
    current_app.logger.info(
        f"[claim] game={code} player={player_id} accepted={len(result.accepted)} rejected={len(result.rejected)}"
    )
    return result


def claim_square(game_code, email, row, col) -> Square:
    """Single-cell claim that raises the typed error instead of reporting it."""
    row, col = parse_cell({'row': row, 'col': col})
    result = confirm_squares(game_code, email, [(row, col)])
    if result.rejected:
        rejection = result.rejected[0]
        raise error_for(rejection.code, rejection.message)
    return result.accepted[0]


def find_winner(game: Game, score: dict) -> Optional[Square]:
    """Return the square that wins for this score on the game's final grid."""
    grid = game.final_grid
    if grid is None:
        return None
    cell = winning_cell(score, *grid)
    if cell is None:
        return None
    return Square.query.filter_by(game_id=game.id, row=cell[0], col=cell[1]).first()
