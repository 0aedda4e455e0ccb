from squares.models import Game, Player
from .errors import NotFound, ValidationError


def normalize_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError('Email is required')
    return email.strip().lower()


def load_game(game_code) -> Game:
    if not isinstance(game_code, str) or not game_code.strip():
        raise NotFound('Game not found')
    game = Game.query.filter_by(game_code=game_code.strip().upper()).first()
    if game is None:
        raise NotFound('Game not found')
    return game


def load_player(game: Game, email) -> Player:
    player = Player.query.filter_by(game_id=game.id, email=normalize_email(email)).first()
    if player is None:
        raise NotFound('Player not found')
    return player


def load_player_by_id(game: Game, player_id) -> Player:
    player = Player.query.filter_by(game_id=game.id, id=player_id).first()
    if player is None:
        raise NotFound('Player not found')
    return player
