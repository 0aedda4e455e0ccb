def _names(packets):
    return [pkt['name'] for pkt in packets]


def _create(client):
    res = client.post('/api/games', json={'name': 'Pool', 'ownerEmail': 'owner@example.com', 'ownerName': 'Olive'})
    return res.get_json()['game']['gameId']


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    assert 'connected' in _names(sio_client.get_received('/ws'))

    sio_client.emit('join_game', {'game_code': 'abcd12'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert received[0]['name'] == 'joined'
    assert received[0]['args'][0] == {'room': 'game:ABCD12'}


def test_join_without_code_reports_error(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {}, namespace='/ws')
    assert _names(sio_client.get_received('/ws')) == ['error']


def test_http_changes_notify_the_room(client, sio_client):
    code = _create(client)
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/games/{code}/join', json={'email': 'alice@example.com', 'name': 'Alice'})
    received = sio_client.get_received('/ws')
    assert _names(received) == ['state_update']
    assert received[0]['args'][0] == {'game_code': code}

    client.post(f'/api/games/{code}/pending-squares', json={
        'email': 'alice@example.com', 'squares': [{'row': 1, 'col': 1}],
    })
    assert _names(sio_client.get_received('/ws')) == ['pending_update']


def test_other_rooms_stay_quiet(client, sio_client):
    watched = _create(client)
    other = _create(client)
    sio_client.emit('join_game', {'game_code': watched}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/games/{other}/join', json={'email': 'bob@example.com', 'name': 'Bob'})
    assert sio_client.get_received('/ws') == []


def test_leave_game_stops_updates(client, sio_client):
    code = _create(client)
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.emit('leave_game', {'game_code': code}, namespace='/ws')
    assert 'left' in _names(sio_client.get_received('/ws'))

    client.post(f'/api/games/{code}/join', json={'email': 'carol@example.com', 'name': 'Carol'})
    assert sio_client.get_received('/ws') == []
