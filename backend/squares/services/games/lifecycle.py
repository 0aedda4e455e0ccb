"""Game lifecycle: setup -> active -> completed, strictly forward.

``transition`` is the pure state machine. The service functions around it
persist each step with an UPDATE guarded by the expected previous status,
so two racing requests cannot both perform the same transition.
"""

import json
from numbers import Real

from flask import current_app
from sqlalchemy.exc import IntegrityError

from squares import bcrypt, db
from squares.models import QUARTERS, Game, Player, QuarterScore, Square, utcnow
from .claims import find_winner
from .codes import new_game_code, new_grid_labels
from .errors import InvalidState, Unauthorized, ValidationError
from .payouts import compute_payouts, compute_prize_pool, validate_scoring
from .players import is_authorized_owner
from .queries import load_game, normalize_email
from .views import game_view, player_view, winner_view

START = 'start'
SCORE = 'score'
COMMIT_QUARTER = 'commit_quarter'
COMMIT_FINAL = 'commit_final'

_TRANSITIONS = {
    ('setup', START): 'active',
    ('active', SCORE): 'active',
    ('active', COMMIT_QUARTER): 'active',
    ('active', COMMIT_FINAL): 'completed',
}

_BLOCKED_MESSAGES = {
    START: 'Game already started',
    SCORE: 'Game not active',
    COMMIT_QUARTER: 'Game not active',
    COMMIT_FINAL: 'Game not active',
}

DEFAULT_CONFIG = {
    'squareCost': 0,
    'squareLimit': 100,
    'scoring': {'firstQuarter': 25, 'secondQuarter': 25, 'thirdQuarter': 25, 'final': 25},
    'teams': {'vertical': 'Team 1', 'horizontal': 'Team 2'},
}


def transition(status: str, event: str, is_owner: bool) -> str:
    """Return the status after ``event``, or raise if it is not allowed."""
    if not is_owner:
        raise Unauthorized()
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidState(_BLOCKED_MESSAGES.get(event)) from None


def _required_text(value, label: str, limit: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{label} is required')
    return value.strip()[:limit]


def _validate_config(config) -> dict:
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ValidationError('Config must be an object')

    cost = config.get('squareCost', DEFAULT_CONFIG['squareCost'])
    if isinstance(cost, bool) or not isinstance(cost, Real) or cost != cost or cost < 0:
        raise ValidationError('Square cost must be a non-negative number')

    limit = config.get('squareLimit', DEFAULT_CONFIG['squareLimit'])
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= 100:
        raise ValidationError('Square limit must be a whole number from 1 to 100')

    scoring = validate_scoring(config.get('scoring', DEFAULT_CONFIG['scoring']))

    teams = config.get('teams') or DEFAULT_CONFIG['teams']
    if not isinstance(teams, dict):
        raise ValidationError('Teams must name a vertical and a horizontal team')
    vertical = teams.get('vertical') or DEFAULT_CONFIG['teams']['vertical']
    horizontal = teams.get('horizontal') or DEFAULT_CONFIG['teams']['horizontal']

    return {
        'square_cost': cost,
        'square_limit': limit,
        'first_quarter_pct': scoring['firstQuarter'],
        'second_quarter_pct': scoring['secondQuarter'],
        'third_quarter_pct': scoring['thirdQuarter'],
        'final_pct': scoring['final'],
        'vertical_team': _required_text(vertical, 'Vertical team', 64),
        'horizontal_team': _required_text(horizontal, 'Horizontal team', 64),
    }


def _validate_score(score) -> dict:
    if not isinstance(score, dict):
        raise ValidationError('Invalid score format')
    cleaned = {}
    for side in ('vertical', 'horizontal'):
        value = score.get(side)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError('Invalid score format')
        cleaned[side] = value
    return cleaned


def _next_quarter(committed) -> str:
    """First quarter still open for a commit, or final once all are in."""
    for quarter in QUARTERS:
        if quarter not in committed:
            return quarter
    return QUARTERS[-1]


def create_game(name, owner_email, owner_name, config=None, owner_password=None):
    """Create a game in setup with both label grids and register its owner.

    Returns ``(game, access_link)``.
    """
    name = _required_text(name, 'Game name', 128)
    owner_email = normalize_email(owner_email)
    owner_name = _required_text(owner_name, 'Owner name', 64)
    settings = _validate_config(config)
    if owner_password is not None and not isinstance(owner_password, str):
        raise ValidationError('Owner password must be a string')
    password_hash = bcrypt.generate_password_hash(owner_password).decode('utf-8') if owner_password else None

    cfg = current_app.config
    code_length = int(cfg.get('GAME_CODE_LENGTH', 6))
    attempts = max(1, int(cfg.get('GAME_CODE_ATTEMPTS', 5)))
    setup_rows, setup_cols = new_grid_labels()
    final_rows, final_cols = new_grid_labels()

    for attempt in range(1, attempts + 1):
        game = Game(
            game_code=new_game_code(code_length),
            name=name,
            owner_email=owner_email,
            owner_password_hash=password_hash,
            status='setup',
            setup_rows=json.dumps(setup_rows),
            setup_cols=json.dumps(setup_cols),
            final_rows=json.dumps(final_rows),
            final_cols=json.dumps(final_cols),
            current_vertical=0,
            current_horizontal=0,
            current_quarter=QUARTERS[0],
            **settings,
        )
        db.session.add(game)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(f"[create] code collision on attempt {attempt}")
            if attempt == attempts:
                raise
            continue
        db.session.add(Player(game_id=game.id, email=owner_email, name=owner_name))
        db.session.commit()
        current_app.logger.info(f"[create] game={game.game_code} owner={owner_email}")
        return game, f'/game/{game.game_code}'


def start_game(game_code, requester_email, password=None):
    """Lock the board and reveal the final grid. Returns ``(game, squares)``."""
    game = load_game(game_code)
    transition(game.status, START, is_authorized_owner(game, requester_email, password))
    if game.final_grid is None:
        raise InvalidState('Game grid not properly initialized')

    updated = Game.query.filter_by(id=game.id, status='setup').update(
        {'status': 'active', 'started_at': utcnow()}, synchronize_session=False
    )
    if not updated:
        db.session.rollback()
        current_app.logger.info(f"[start] game={game.game_code} lost race, already started")
        raise InvalidState(_BLOCKED_MESSAGES[START])
    db.session.commit()
    current_app.logger.info(f"[start] game={game.game_code}")
    squares = Square.query.filter_by(game_id=game.id).order_by(Square.id).all()
    return game, squares


def update_score(game_code, requester_email, score, quarter=None, password=None) -> Game:
    """Record the running score; with ``quarter``, also commit it for good.

    Committing ``final`` completes the game.
    """
    game = load_game(game_code)
    score = _validate_score(score)
    if quarter is not None and quarter not in QUARTERS:
        raise ValidationError('Invalid quarter')
    if quarter is None:
        event = SCORE
    elif quarter == 'final':
        event = COMMIT_FINAL
    else:
        event = COMMIT_QUARTER
    next_status = transition(game.status, event, is_authorized_owner(game, requester_email, password))

    values = {'current_vertical': score['vertical'], 'current_horizontal': score['horizontal']}
    if next_status == 'completed':
        values['status'] = 'completed'
        values['completed_at'] = utcnow()

    updated = Game.query.filter_by(id=game.id, status='active').update(values, synchronize_session=False)
    if not updated:
        db.session.rollback()
        raise InvalidState(_BLOCKED_MESSAGES[event])
    if quarter is not None:
        db.session.add(QuarterScore(game_id=game.id, quarter=quarter, **score))
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise InvalidState(f'{quarter} score already committed') from None
        # The guarded UPDATE above holds the game row, so this sees every earlier commit
        committed = {q for (q,) in db.session.query(QuarterScore.quarter).filter_by(game_id=game.id)}
        Game.query.filter_by(id=game.id).update(
            {'current_quarter': _next_quarter(committed)}, synchronize_session=False
        )
    db.session.commit()

    tag = 'complete' if next_status == 'completed' else 'score'
    current_app.logger.info(
        f"[{tag}] game={game.game_code} quarter={quarter} vertical={score['vertical']} horizontal={score['horizontal']}"
    )
    return game


def get_game(game_code) -> dict:
    """Full read view of a game with live prize pool, payouts and winners."""
    game = load_game(game_code)
    players = Player.query.filter_by(game_id=game.id).order_by(Player.id).all()
    squares = Square.query.filter_by(game_id=game.id).order_by(Square.id).all()
    players_by_id = {p.id: p for p in players}

    # Always recomputed from the claimed squares, never stored
    prize_pool = compute_prize_pool(len(squares), game.square_cost)
    payouts = compute_payouts(prize_pool, game.scoring)

    winners = {}
    for committed in game.quarter_scores:
        winners[committed.quarter] = winner_view(
            find_winner(game, committed.score), players_by_id, committed.score, payouts[committed.quarter]
        )
    current_winner = None
    if game.status != 'setup':
        current = {'vertical': game.current_vertical, 'horizontal': game.current_horizontal}
        current_winner = winner_view(
            find_winner(game, current), players_by_id, current, payouts[game.current_quarter]
        )

    return {
        'game': game_view(game),
        'players': [player_view(p) for p in players],
        'squares': [s.to_dict() for s in squares],
        'prizePool': prize_pool,
        'payouts': payouts,
        'winners': winners,
        'currentWinner': current_winner,
    }
