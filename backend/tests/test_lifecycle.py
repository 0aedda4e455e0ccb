import pytest

from squares.models import Game, QuarterScore
from squares.services.games import lifecycle
from squares.services.games.claims import claim_square
from squares.services.games.errors import InvalidState, NotFound, Unauthorized, ValidationError
from squares.services.games.lifecycle import (
    COMMIT_FINAL, COMMIT_QUARTER, SCORE, START,
    create_game, get_game, start_game, transition, update_score,
)
from squares.services.games.players import join_game

OWNER = 'owner@example.com'


@pytest.mark.parametrize('status,event,expected', [
    ('setup', START, 'active'),
    ('active', SCORE, 'active'),
    ('active', COMMIT_QUARTER, 'active'),
    ('active', COMMIT_FINAL, 'completed'),
])
def test_transition_allowed(status, event, expected):
    assert transition(status, event, True) == expected


@pytest.mark.parametrize('status,event', [
    ('active', START),
    ('completed', START),
    ('setup', SCORE),
    ('setup', COMMIT_QUARTER),
    ('setup', COMMIT_FINAL),
    ('completed', SCORE),
    ('completed', COMMIT_FINAL),
])
def test_transition_blocked(status, event):
    with pytest.raises(InvalidState):
        transition(status, event, True)


def test_transition_requires_owner():
    with pytest.raises(Unauthorized):
        transition('setup', START, False)


def test_create_game_defaults_and_normalized_owner(flask_app):
    game, link = create_game('Sunday', '  Boss@Example.COM ', 'Boss')
    assert link == f'/game/{game.game_code}'
    assert game.status == 'setup'
    assert game.owner_email == 'boss@example.com'
    assert game.square_limit == 100
    assert game.scoring == {'firstQuarter': 25, 'secondQuarter': 25, 'thirdQuarter': 25, 'final': 25}
    assert [p.email for p in game.players] == ['boss@example.com']

    rows, cols = game.setup_grid
    assert sorted(rows) == list(range(10)) and sorted(cols) == list(range(10))
    final_rows, final_cols = game.final_grid
    assert sorted(final_rows) == list(range(10)) and sorted(final_cols) == list(range(10))


@pytest.mark.parametrize('config', [
    {'squareCost': -1},
    {'squareCost': True},
    {'squareLimit': 0},
    {'squareLimit': 101},
    {'squareLimit': 2.5},
    {'scoring': {'firstQuarter': 25, 'secondQuarter': 25, 'thirdQuarter': 25, 'final': 20}},
    {'scoring': {'firstQuarter': 25, 'secondQuarter': 25, 'thirdQuarter': 50}},
    {'scoring': {'firstQuarter': -10, 'secondQuarter': 40, 'thirdQuarter': 40, 'final': 30}},
    {'teams': 'Bears vs Lions'},
    'not-an-object',
])
def test_create_game_rejects_bad_config(flask_app, config):
    with pytest.raises(ValidationError):
        create_game('Sunday', OWNER, 'Boss', config)
    assert Game.query.count() == 0


@pytest.mark.parametrize('name,email,owner_name', [
    ('', OWNER, 'Boss'),
    ('Sunday', '', 'Boss'),
    ('Sunday', OWNER, '   '),
])
def test_create_game_requires_fields(flask_app, name, email, owner_name):
    with pytest.raises(ValidationError):
        create_game(name, email, owner_name)


def test_create_game_retries_on_code_collision(flask_app, monkeypatch):
    first, _ = create_game('One', OWNER, 'Boss')
    codes = iter([first.game_code, 'FRESH1'])
    monkeypatch.setattr(lifecycle, 'new_game_code', lambda length: next(codes))

    second, link = create_game('Two', OWNER, 'Boss')
    assert second.game_code == 'FRESH1'
    assert link == '/game/FRESH1'
    assert Game.query.count() == 2


def test_start_requires_owner_and_only_happens_once(make_game):
    code = make_game()
    with pytest.raises(Unauthorized):
        start_game(code, 'someone@example.com')

    game, squares = start_game(code, 'OWNER@example.com')
    assert game.status == 'active'
    assert game.started_at is not None
    assert squares == []

    with pytest.raises(InvalidState):
        start_game(code, OWNER)


def test_start_unknown_game(flask_app):
    with pytest.raises(NotFound):
        start_game('ZZZZZZ', OWNER)


def test_start_keeps_the_final_grid(make_game):
    code = make_game()
    before = Game.query.filter_by(game_code=code).one().final_grid
    game, _ = start_game(code, OWNER)
    assert game.final_grid == before


def test_owner_password_is_required_when_set(make_game):
    code = make_game(owner_password='hunter2')
    with pytest.raises(Unauthorized):
        start_game(code, OWNER)
    with pytest.raises(Unauthorized):
        start_game(code, OWNER, password='wrong')
    game, _ = start_game(code, OWNER, password='hunter2')
    assert game.status == 'active'


def test_score_updates_need_an_active_game(make_game):
    code = make_game()
    with pytest.raises(InvalidState):
        update_score(code, OWNER, {'vertical': 7, 'horizontal': 3})
    with pytest.raises(InvalidState):
        update_score(code, OWNER, {'vertical': 7, 'horizontal': 3}, quarter='firstQuarter')


@pytest.mark.parametrize('score', [
    {'vertical': -1, 'horizontal': 3},
    {'vertical': 7},
    {'vertical': '7', 'horizontal': 3},
    {'vertical': True, 'horizontal': 3},
    [7, 3],
])
def test_score_must_be_two_non_negative_integers(make_game, score):
    code = make_game()
    start_game(code, OWNER)
    with pytest.raises(ValidationError):
        update_score(code, OWNER, score)


def test_unknown_quarter_is_rejected(make_game):
    code = make_game()
    start_game(code, OWNER)
    with pytest.raises(ValidationError):
        update_score(code, OWNER, {'vertical': 1, 'horizontal': 1}, quarter='overtime')


def test_only_owner_scores(make_game):
    code = make_game()
    start_game(code, OWNER)
    with pytest.raises(Unauthorized):
        update_score(code, 'fan@example.com', {'vertical': 1, 'horizontal': 1})


def test_running_score_does_not_commit(make_game):
    code = make_game()
    start_game(code, OWNER)
    game = update_score(code, OWNER, {'vertical': 14, 'horizontal': 10})
    assert (game.current_vertical, game.current_horizontal) == (14, 10)
    assert game.current_quarter == 'firstQuarter'
    assert QuarterScore.query.count() == 0


def test_committed_quarter_is_final(make_game):
    code = make_game()
    start_game(code, OWNER)
    game = update_score(code, OWNER, {'vertical': 7, 'horizontal': 3}, quarter='firstQuarter')
    assert game.current_quarter == 'secondQuarter'

    with pytest.raises(InvalidState):
        update_score(code, OWNER, {'vertical': 10, 'horizontal': 3}, quarter='firstQuarter')
    committed = QuarterScore.query.filter_by(quarter='firstQuarter').one()
    assert committed.score == {'vertical': 7, 'horizontal': 3}
    # The failed re-commit must not have moved the running score either
    game = Game.query.filter_by(game_code=code).one()
    assert (game.current_vertical, game.current_horizontal) == (7, 3)


def test_final_completes_the_game(make_game):
    code = make_game()
    start_game(code, OWNER)
    for quarter, score in [('firstQuarter', (7, 0)), ('secondQuarter', (14, 3)), ('thirdQuarter', (17, 10))]:
        update_score(code, OWNER, {'vertical': score[0], 'horizontal': score[1]}, quarter=quarter)
    game = update_score(code, OWNER, {'vertical': 24, 'horizontal': 20}, quarter='final')
    assert game.status == 'completed'
    assert game.completed_at is not None

    with pytest.raises(InvalidState):
        update_score(code, OWNER, {'vertical': 31, 'horizontal': 20})


def test_setup_view_hides_final_grid(make_game):
    code = make_game()
    view = get_game(code)
    assert 'final' not in view['game']['grid']
    assert view['currentWinner'] is None

    start_game(code, OWNER)
    view = get_game(code)
    rows, cols = Game.query.filter_by(game_code=code).one().final_grid
    assert view['game']['grid']['final'] == {'rows': rows, 'cols': cols}


def test_full_game_pays_the_winning_square(make_game):
    code = make_game(square_cost=2, square_limit=3)
    game = Game.query.filter_by(game_code=code).one()
    rows, cols = game.final_grid
    winning = (rows.index(7), cols.index(3))
    others = [(r, c) for r in range(10) for c in range(10) if (r, c) != winning]

    join_game(code, 'alice@example.com', 'Alice')
    join_game(code, 'bob@example.com', 'Bob')
    alice_square = claim_square(code, 'alice@example.com', *winning)
    alice_id = alice_square.player_id
    for row, col in others[:2]:
        claim_square(code, 'alice@example.com', row, col)
    for row, col in others[2:5]:
        claim_square(code, 'bob@example.com', row, col)

    start_game(code, OWNER)
    update_score(code, OWNER, {'vertical': 17, 'horizontal': 13}, quarter='firstQuarter')

    view = get_game(code)
    assert view['prizePool'] == 12
    assert view['payouts'] == {'firstQuarter': 3, 'secondQuarter': 3, 'thirdQuarter': 3, 'final': 3}
    winner = view['winners']['firstQuarter']
    assert winner['playerId'] == alice_id
    assert winner['playerName'] == 'Alice'
    assert winner['payout'] == 3
    assert view['game']['currentQuarter'] == 'secondQuarter'


def test_unclaimed_winning_cell_has_no_winner(make_game):
    code = make_game()
    start_game(code, OWNER)
    update_score(code, OWNER, {'vertical': 0, 'horizontal': 0}, quarter='firstQuarter')
    winner = get_game(code)['winners']['firstQuarter']
    assert winner['square'] is None
    assert winner['playerId'] is None


def test_prize_pool_tracks_claims_live(make_game):
    code = make_game(square_cost=5, square_limit=10)
    join_game(code, 'alice@example.com', 'Alice')
    assert get_game(code)['prizePool'] == 0
    claim_square(code, 'alice@example.com', 0, 0)
    claim_square(code, 'alice@example.com', 0, 1)
    view = get_game(code)
    assert view['prizePool'] == 10
    assert view['payouts']['final'] == 2.5


def test_quarter_pointer_counts_commits_made_by_other_requests(file_db_app):
    game, _ = create_game('Stale Read', OWNER, 'Boss')
    code = game.game_code
    start_game(code, OWNER)

    # This session's view of the game predates the other request's commit
    stale = Game.query.filter_by(game_code=code).one()
    assert list(stale.quarter_scores) == []
    with file_db_app.app_context():
        update_score(code, OWNER, {'vertical': 14, 'horizontal': 7}, quarter='secondQuarter')

    game = update_score(code, OWNER, {'vertical': 7, 'horizontal': 0}, quarter='firstQuarter')
    assert game.current_quarter == 'thirdQuarter'
    assert {qs.quarter for qs in QuarterScore.query.all()} == {'firstQuarter', 'secondQuarter'}
