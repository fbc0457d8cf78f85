def test_create_match_requires_login(client):
    res = client.post('/api/matches')
    assert res.status_code == 401
    assert res.get_json()['kind'] == 'unauthenticated'


def test_create_match(alice, accounts):
    res = alice.post('/api/matches')
    assert res.status_code == 201
    data = res.get_json()
    assert data['host_id'] == accounts['alice']
    assert len(data['match_id']) == 32
    assert len(data['code']) == 5
    assert all(ch in 'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789' for ch in data['code'])


def test_join_by_code_and_get(alice, bob, accounts):
    created = alice.post('/api/matches').get_json()
    res = bob.post('/api/matches/join', json={'code': created['code'].lower()})
    assert res.status_code == 200
    match = res.get_json()['match']
    assert match['guest_id'] == accounts['bob']
    assert match['guest_username'] == 'bob'
    assert match['status'] == 'in_progress'

    by_id = alice.get(f"/api/matches/{created['match_id']}").get_json()
    by_code = alice.get(f"/api/matches/code/{created['code']}").get_json()
    assert by_id == by_code
    assert by_id['host_username'] == 'alice'


def test_join_requires_code(bob, accounts):
    res = bob.post('/api/matches/join', json={})
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'invalid_input'


def test_join_unknown_match(bob, accounts):
    assert bob.post('/api/matches/join', json={'code': 'ZZZZZ'}).status_code == 404
    assert bob.post('/api/matches/nope/join').status_code == 404


def test_self_join_is_forbidden(alice, accounts):
    match_id = alice.post('/api/matches').get_json()['match_id']
    res = alice.post(f'/api/matches/{match_id}/join')
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'forbidden'


def test_third_account_cannot_join_full_match(carol, started_match):
    res = carol.post(f'/api/matches/{started_match}/join')
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Match already full'


def test_guest_rejoin_is_a_no_op(bob, started_match, accounts):
    res = bob.post(f'/api/matches/{started_match}/join')
    assert res.status_code == 200
    assert res.get_json()['match']['guest_id'] == accounts['bob']


def test_alternating_moves_scenario(alice, bob, started_match, accounts):
    # Guest opens the match
    res = bob.post(f'/api/matches/{started_match}/moves', json={'column': 1})
    assert res.status_code == 201
    move = res.get_json()
    assert move['account_id'] == accounts['bob']
    assert move['username'] == 'bob'
    assert 1 <= move['dice'] <= 6
    assert move['column'] == 1
    assert move['seq'] == 1

    # Host answers
    res = alice.post(f'/api/matches/{started_match}/moves', json={'column': 0})
    assert res.status_code == 201
    assert res.get_json()['seq'] == 2

    # Host again: out of turn
    res = alice.post(f'/api/matches/{started_match}/moves', json={'column': 2})
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'out_of_turn'

    history = alice.get(f'/api/matches/{started_match}/moves').get_json()['moves']
    assert [m['username'] for m in history] == ['bob', 'alice']
    assert [m['seq'] for m in history] == [1, 2]


def test_move_column_validation(alice, started_match):
    for bad in (3, -1, 'x', None, True, 1.5, '--1', '\u00b2', '1e0', ''):
        res = alice.post(f'/api/matches/{started_match}/moves', json={'column': bad})
        assert res.status_code == 400, bad
        assert res.get_json()['kind'] == 'invalid_input'
    # Integer strings are accepted
    assert alice.post(f'/api/matches/{started_match}/moves', json={'column': '2'}).status_code == 201


def test_move_before_guest_joins(alice, accounts):
    match_id = alice.post('/api/matches').get_json()['match_id']
    res = alice.post(f'/api/matches/{match_id}/moves', json={'column': 0})
    assert res.status_code == 409
    assert 'waiting' in res.get_json()['error']


def test_move_by_outsider_is_forbidden(carol, started_match):
    res = carol.post(f'/api/matches/{started_match}/moves', json={'column': 0})
    assert res.status_code == 403


def test_move_precondition_order(carol, started_match):
    # Membership is checked before the column
    res = carol.post(f'/api/matches/{started_match}/moves', json={'column': 9})
    assert res.status_code == 403


def test_moves_of_unknown_match(alice, accounts):
    assert alice.get('/api/matches/missing/moves').status_code == 404
    assert alice.post('/api/matches/missing/moves', json={'column': 0}).status_code == 404


def test_end_match_and_idempotence(alice, bob, carol, started_match, accounts):
    res = bob.put(f'/api/matches/{started_match}/end', json={'winner_id': accounts['alice']})
    assert res.status_code == 200
    data = res.get_json()
    assert data['winner_id'] == accounts['alice']
    assert data['winner_username'] == 'alice'
    assert data['ended_at']

    # Ending again fails for everyone, participant or not
    for http in (alice, bob, carol):
        again = http.put(f'/api/matches/{started_match}/end', json={'winner_id': accounts['bob']})
        assert again.status_code == 409
        assert again.get_json()['error'] == 'Match already ended'

    state = alice.get(f'/api/matches/{started_match}').get_json()
    assert state['status'] == 'ended'
    assert state['winner_id'] == accounts['alice']

    # Terminal: no more moves or joins
    assert bob.post(f'/api/matches/{started_match}/moves', json={'column': 0}).status_code == 409
    assert carol.post(f'/api/matches/{started_match}/join').status_code == 409


def test_end_match_with_outside_winner(alice, started_match, accounts):
    res = alice.put(f'/api/matches/{started_match}/end', json={'winner_id': accounts['carol']})
    assert res.status_code == 403
    state = alice.get(f'/api/matches/{started_match}').get_json()
    assert state['status'] == 'in_progress'
    assert state['ended_at'] is None


def test_end_match_requires_winner(alice, started_match, accounts):
    assert alice.put(f'/api/matches/{started_match}/end', json={}).status_code == 400
    assert alice.put(f'/api/matches/{started_match}/end', json={'winner_id': 'abc'}).status_code == 400
    # Fractions and non-finite numbers are never truncated into an account id
    for bad in (accounts['alice'] + 0.7, float(accounts['bob']), float('inf'), True):
        res = alice.put(f'/api/matches/{started_match}/end', json={'winner_id': bad})
        assert res.status_code == 400, bad
        assert res.get_json()['kind'] == 'invalid_input'
    state = alice.get(f'/api/matches/{started_match}').get_json()
    assert state['status'] == 'in_progress'
    assert state['winner_id'] is None
    # A digit string still names a player
    res = alice.put(f'/api/matches/{started_match}/end', json={'winner_id': str(accounts['bob'])})
    assert res.status_code == 200
    assert res.get_json()['winner_id'] == accounts['bob']


def test_end_match_by_outsider(carol, started_match, accounts):
    res = carol.put(f'/api/matches/{started_match}/end', json={'winner_id': accounts['carol']})
    assert res.status_code == 403


def test_end_match_without_guest(alice, accounts):
    match_id = alice.post('/api/matches').get_json()['match_id']
    res = alice.put(f'/api/matches/{match_id}/end', json={'winner_id': accounts['alice']})
    assert res.status_code == 409


def test_active_matches(alice, bob, started_match, accounts):
    other = alice.post('/api/matches').get_json()['match_id']
    active_ids = {m['id'] for m in alice.get('/api/matches/active').get_json()}
    assert active_ids == {started_match, other}

    alice.put(f'/api/matches/{started_match}/end', json={'winner_id': accounts['bob']})
    assert [m['id'] for m in bob.get('/api/matches/active').get_json()] == []


def test_register_login_and_check(client):
    res = client.post('/register', json={'username': 'dora', 'password': 'secret'})
    assert res.status_code == 201
    assert client.get('/check_login').get_json()['account']['username'] == 'dora'
    assert client.post('/register', json={'username': 'dora', 'password': 'x'}).status_code == 400
    assert client.post('/logout').status_code == 200
    assert client.get('/check_login').status_code == 401
    assert client.post('/login', json={'username': 'dora', 'password': 'wrong'}).status_code == 401
