from asocijacije import db
from asocijacije.models import User
from asocijacije.services.games.room import AUTO_SECRET_WORD


def _to_clue(room):
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    assert room.phase.name == 'clue'


def test_reconnect_within_grace_keeps_turn(full_room, emitter):
    room = full_room()
    _to_clue(room)
    token = emitter.last('s1', 'assigned')['reconnect_token']

    room.disconnect('s1')
    assert room.seats[1].disconnected
    assert room.seats[1].name == 'P1'
    assert room.timers.active('grace')

    room.clock.advance(10)
    assert room.join('s1b', token=token) == 1
    assert not room.timers.active('grace')
    room.clock.advance(20)
    assert room.phase.name == 'clue'
    assert room.turn == 0

    # Tokens are single use
    new_token = emitter.last('s1b', 'assigned')['reconnect_token']
    assert new_token and new_token != token


def test_reconnect_after_grace_finds_turn_advanced(full_room, emitter):
    room = full_room()
    _to_clue(room)
    token = emitter.last('s1', 'assigned')['reconnect_token']

    room.disconnect('s1')
    room.clock.advance(15)
    assert room.phase.name == 'clue'
    assert room.turn == 1
    assert room.current_round().clue_giver == 0

    assert room.join('s1b', token=token) == 1
    assert room.turn == 1


def test_missing_secret_holder_gets_placeholder_word(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.disconnect('s0')
    assert room.admin_slot == 1
    room.clock.advance(15)
    assert room.phase.name == 'clue'
    assert room.phase.secret_word == AUTO_SECRET_WORD
    assert emitter.last('s1', 'game_state')['secret_word'] == AUTO_SECRET_WORD


def test_missing_guesser_is_skipped_before_guess_timer(full_room):
    room = full_room()
    _to_clue(room)
    room.disconnect('s2')
    # Clue giver is still here, nothing to skip yet
    assert not room.timers.active('grace')

    room.submit_clue(1, 'fruit')
    assert room.phase.name == 'guess'
    assert room.timers.active('grace')
    room.clock.advance(15)
    assert room.phase.name == 'clue'
    assert room.turn == 1
    assert not room.timers.active('guess')
    room.clock.advance(30)
    assert room.phase.name == 'clue'
    assert room.turn == 1


def test_lobby_disconnect_releases_seat(full_room, emitter):
    room = full_room()
    token = emitter.last('s2', 'assigned')['reconnect_token']
    room.disconnect('s2')
    assert room.seats[2].empty
    assert room.seats[2].reservation is None
    assert room.join('late', name='Late', token=token) == 2
    assert room.seats[2].name == 'Late'


def test_disconnect_during_countdown_returns_to_lobby(full_room):
    room = full_room()
    room.start_countdown(0, 10)
    room.disconnect('s3')
    assert room.phase.name == 'lobby'
    room.clock.advance(20)
    assert room.phase.name == 'lobby'


def test_everyone_gone_resets_room(full_room):
    room = full_room()
    _to_clue(room)
    for i in range(4):
        room.disconnect(f's{i}')
    assert room.phase.name == 'lobby'
    assert all(seat.empty for seat in room.seats)
    assert room.admin_slot == -1
    assert room.clock.pending() == 0
    assert room.is_empty()


def test_voluntary_leave_mid_game_releases_seat(full_room):
    room = full_room()
    _to_clue(room)
    assert room.leave('s3')
    assert room.seats[3].empty
    assert room.join('s9', name='Sub') == 3


def test_reconnect_by_linked_account(app_ctx, make_room, store):
    user = User(username='mila', email='mila@example.com')
    user.set_password('password')
    db.session.add(user)
    db.session.commit()
    uid = user.id

    room = make_room()
    room.join('s0', user_id=uid, profile=store.get_profile(uid))
    for i in range(1, 4):
        room.join(f's{i}', name=f'P{i}')
    room.start_game(0)

    room.disconnect('s0')
    assert room.seats[0].disconnected
    assert room.join('s0b', user_id=uid, profile=store.get_profile(uid)) == 0
    assert room.seats[0].name == 'mila'
    # Same account from a second tab only spectates
    assert room.join('s0c', user_id=uid, profile=store.get_profile(uid)) == -1


def test_emptied_room_drops_participant_records(app_ctx, make_room, store):
    ids = []
    for i in range(4):
        user = User(username=f'igrac{i}', email=f'igrac{i}@example.com')
        user.set_password('password')
        db.session.add(user)
        db.session.commit()
        ids.append(user.id)
    store.create_room('ABC234', 'Test room', ids[0])

    room = make_room(creator_id=ids[0])
    for i, uid in enumerate(ids):
        room.join(f's{i}', user_id=uid, profile=store.get_profile(uid))
    room.start_game(0)
    assert [g['slot'] for g in store.my_games(ids[3])] == [3]

    for i in range(4):
        room.disconnect(f's{i}')
    assert room.phase.name == 'lobby'
    assert all(store.my_games(uid) == [] for uid in ids)
    assert store.find_room('ABC234')['status'] == 'lobby'
