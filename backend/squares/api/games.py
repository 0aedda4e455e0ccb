from flask import Blueprint, jsonify, request

from squares import socketio
from squares.services.games import claims, lifecycle, pending, players
from squares.services.games.errors import ValidationError, error_for
from squares.services.games.views import game_view, pending_view, player_view


games = Blueprint('games', __name__)


def _broadcast(game_code: str, event: str = 'state_update') -> None:
    socketio.emit(event, {'game_code': game_code}, to=f"game:{game_code}", namespace='/ws')


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@games.route('', methods=['POST'])
def create_game():
    data = _body()
    game, access_link = lifecycle.create_game(
        name=data.get('name'),
        owner_email=data.get('ownerEmail'),
        owner_name=data.get('ownerName'),
        config=data.get('config'),
        owner_password=data.get('ownerPassword'),
    )
    return jsonify({'game': game_view(game), 'accessLink': access_link}), 201


@games.route('/<string:game_code>', methods=['GET'])
def get_game(game_code):
    return jsonify(lifecycle.get_game(game_code))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    data = _body()
    game, squares = lifecycle.start_game(game_code, data.get('ownerEmail'), data.get('ownerPassword'))
    _broadcast(game.game_code)
    return jsonify({'game': game_view(game), 'squares': [s.to_dict() for s in squares]})


@games.route('/<string:game_code>/score', methods=['POST'])
def update_game_score(game_code):
    data = _body()
    quarter = data.get('quarter')
    if not quarter:
        raise ValidationError('Invalid quarter')
    game = lifecycle.update_score(
        game_code, data.get('ownerEmail'), data.get('score'), quarter=quarter, password=data.get('ownerPassword')
    )
    _broadcast(game.game_code)
    return jsonify({'game': game_view(game)})


@games.route('/<string:game_code>/current-score', methods=['POST'])
def update_current_score(game_code):
    data = _body()
    game = lifecycle.update_score(
        game_code, data.get('ownerEmail'), data.get('score'), password=data.get('ownerPassword')
    )
    _broadcast(game.game_code)
    return jsonify({'game': game_view(game)})


@games.route('/<string:game_code>/join', methods=['POST'])
def join_game(game_code):
    data = _body()
    player, created = players.join_game(
        game_code, data.get('email'), data.get('name'), data.get('venmoUsername')
    )
    _broadcast(game_code.upper())
    return jsonify({'player': player_view(player)}), 201 if created else 200


@games.route('/<string:game_code>/players', methods=['GET'])
def get_game_players(game_code):
    return jsonify({'players': [player_view(p, squares) for p, squares in players.get_game_players(game_code)]})


@games.route('/<string:game_code>/squares', methods=['POST'])
def confirm_squares(game_code):
    data = _body()
    email = data.get('email')
    if 'cells' not in data and 'squares' not in data:
        # Single-square form: typed errors propagate as-is
        square = claims.claim_square(game_code, email, data.get('row'), data.get('col'))
        _broadcast(game_code.upper())
        return jsonify({'square': square.to_dict()}), 201

    result = claims.confirm_squares(game_code, email, data.get('cells', data.get('squares')))
    payload = {
        'accepted': [s.to_dict() for s in result.accepted],
        'rejected': [r.to_dict() for r in result.rejected],
    }
    if result.accepted:
        _broadcast(game_code.upper())
        return jsonify(payload), 201
    first = result.rejected[0]
    payload.update({'error': first.message, 'code': first.code})
    return jsonify(payload), error_for(first.code).status_code


@games.route('/<string:game_code>/squares', methods=['GET'])
def get_player_squares(game_code):
    email = request.args.get('email')
    if not email:
        raise ValidationError('Email is required')
    return jsonify({'squares': [s.to_dict() for s in players.get_player_squares(game_code, email)]})


@games.route('/<string:game_code>/pending-squares', methods=['POST'])
def update_pending_squares(game_code):
    data = _body()
    entries = pending.set_pending_squares(game_code, data.get('email'), data.get('squares', data.get('cells', [])))
    _broadcast(game_code.upper(), 'pending_update')
    return jsonify({'pendingSquares': pending_view(entries)})


@games.route('/<string:game_code>/pending-squares', methods=['GET'])
def get_pending_squares(game_code):
    return jsonify({'pendingSquares': pending_view(pending.get_pending_squares(game_code))})


@games.route('/<string:game_code>/players/<int:player_id>/payment', methods=['POST'])
def toggle_payment(game_code, player_id):
    data = _body()
    player = players.toggle_payment(game_code, player_id, data.get('ownerEmail'), data.get('ownerPassword'))
    _broadcast(game_code.upper())
    return jsonify({'player': player_view(player)})


@games.route('/<string:game_code>/players/<int:player_id>/venmo', methods=['POST'])
def update_venmo_username(game_code, player_id):
    data = _body()
    player = players.set_venmo_username(
        game_code, player_id, data.get('ownerEmail'), data.get('venmoUsername'), data.get('ownerPassword')
    )
    _broadcast(game_code.upper())
    return jsonify({'player': player_view(player)})
