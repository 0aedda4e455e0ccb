"""Player registry: one player per (game, email), joined idempotently."""

from typing import Optional, Tuple

from flask import current_app
from sqlalchemy import not_
from sqlalchemy.exc import IntegrityError

from squares import bcrypt, db
from squares.models import Game, Player, Square
from .errors import InvalidState, Unauthorized, ValidationError
from .queries import load_game, load_player, load_player_by_id, normalize_email


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Player name is required')
    return name.strip()[:64]


def _clean_venmo(username) -> Optional[str]:
    if username is None:
        return None
    if not isinstance(username, str):
        raise ValidationError('Venmo username must be a string')
    return username.strip().lstrip('@')[:64] or None


def is_authorized_owner(game: Game, email, password=None) -> bool:
    """Whether the requester is the game's owner.

    Games created with an owner password also require that password.
    """
    if not game.is_owner(email):
        return False
    if game.owner_password_hash:
        return bool(password) and bcrypt.check_password_hash(game.owner_password_hash, password)
    return True


def authorize_owner(game: Game, email, password=None) -> None:
    if not is_authorized_owner(game, email, password):
        raise Unauthorized()


def _apply_profile(player: Player, name: str, venmo_username) -> None:
    player.name = name
    if venmo_username is not None:
        player.venmo_username = _clean_venmo(venmo_username)


def join_game(game_code, email, name, venmo_username=None) -> Tuple[Player, bool]:
    """Join a game, or update the existing player with this email.

    Returns the player and whether it was newly created. New players other
    than the owner are only admitted while the game is in setup.
    """
    game = load_game(game_code)
    email = normalize_email(email)
    name = _clean_name(name)

    player = Player.query.filter_by(game_id=game.id, email=email).first()
    if player is not None:
        _apply_profile(player, name, venmo_username)
        db.session.commit()
        return player, False

    if game.status != 'setup' and not game.is_owner(email):
        raise InvalidState('Game is no longer accepting new players')

    player = Player(game_id=game.id, email=email, name=name,
                    venmo_username=_clean_venmo(venmo_username))
    db.session.add(player)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent join for the same email
        db.session.rollback()
        player = Player.query.filter_by(game_id=game.id, email=email).one()
        _apply_profile(player, name, venmo_username)
        db.session.commit()
        return player, False

    current_app.logger.info(f"[join] game={game.game_code} player={player.id}")
    return player, True


def toggle_payment(game_code, player_id, requester_email, password=None) -> Player:
    game = load_game(game_code)
    authorize_owner(game, requester_email, password)
    player = load_player_by_id(game, player_id)
    # Flip in the database so concurrent toggles never read a stale flag
    Player.query.filter_by(id=player.id, game_id=game.id).update(
        {Player.has_paid: not_(Player.has_paid)}, synchronize_session=False
    )
    db.session.commit()
    current_app.logger.info(f"[payment] game={game.game_code} player={player.id} paid={player.has_paid}")
    return player


def set_venmo_username(game_code, player_id, requester_email, username, password=None) -> Player:
    game = load_game(game_code)
    authorize_owner(game, requester_email, password)
    player = load_player_by_id(game, player_id)
    player.venmo_username = _clean_venmo(username)
    db.session.commit()
    return player


def get_player_squares(game_code, email) -> list:
    game = load_game(game_code)
    player = load_player(game, email)
    return Square.query.filter_by(game_id=game.id, player_id=player.id).order_by(Square.id).all()


def get_game_players(game_code) -> list:
    """Return (player, squares) pairs for every player in the game."""
    game = load_game(game_code)
    squares_by_player = {}
    for square in Square.query.filter_by(game_id=game.id).order_by(Square.id).all():
        squares_by_player.setdefault(square.player_id, []).append(square)
    players = Player.query.filter_by(game_id=game.id).order_by(Player.id).all()
    return [(p, squares_by_player.get(p.id, [])) for p in players]
