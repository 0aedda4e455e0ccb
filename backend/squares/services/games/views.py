"""Read-boundary projections from models to response dicts.

These never mutate the models they read, so a redacted shape can never be
written back by accident.
"""

from squares.models import Game, Player, Square


def _iso(value):
    return value.isoformat() if value else None


def grid_view(game: Game) -> dict:
    rows, cols = game.setup_grid
    grid = {'rows': rows, 'cols': cols}
    # The final grid decides winners; hide it until the squares are locked in
    final = game.final_grid if game.status != 'setup' else None
    if final is not None:
        grid['final'] = {'rows': final[0], 'cols': final[1]}
    return grid


def game_view(game: Game) -> dict:
    scores = {'current': {'vertical': game.current_vertical, 'horizontal': game.current_horizontal}}
    for committed in game.quarter_scores:
        scores[committed.quarter] = committed.score
    return {
        'gameId': game.game_code,
        'name': game.name,
        'ownerEmail': game.owner_email,
        'hasOwnerPassword': bool(game.owner_password_hash),
        'status': game.status,
        'config': {
            'squareCost': game.square_cost,
            'squareLimit': game.square_limit,
            'scoring': game.scoring,
            'teams': {'vertical': game.vertical_team, 'horizontal': game.horizontal_team},
        },
        'grid': grid_view(game),
        'scores': scores,
        'currentQuarter': game.current_quarter,
        'createdAt': _iso(game.created_at),
        'startedAt': _iso(game.started_at),
        'completedAt': _iso(game.completed_at),
    }


def player_view(player: Player, squares=None) -> dict:
    data = player.to_dict()
    if squares is not None:
        data['squares'] = [s.to_dict() for s in squares]
    return data


def winner_view(square: Square, players_by_id: dict, score: dict, payout: float) -> dict:
    player = players_by_id.get(square.player_id) if square else None
    return {
        'score': score,
        'square': square.to_dict() if square else None,
        'playerId': player.id if player else None,
        'playerName': player.name if player else None,
        'payout': payout,
    }


def pending_view(entries) -> list:
    return [e.to_dict() for e in entries]
