from asocijacije import db
from asocijacije.models import User
from asocijacije.services.games.scoring import TEAM_A, TEAM_B


def _play_correct_round(room):
    cfg = room.current_round()
    assert room.submit_secret(cfg.secret_holder, 'word')
    assert room.submit_clue(room.current_round().clue_giver, 'hint')
    assert room.submit_guess(room.current_round().guesser, 'WORD')


def test_start_requires_admin_and_full_table(make_room):
    room = make_room()
    for i in range(3):
        room.join(f's{i}', name=f'P{i}')
    assert room.admin_slot == 0
    assert not room.start_game(0)
    room.join('s3', name='P3')
    assert not room.start_game(1)
    assert room.start_game(0)
    assert room.phase.name == 'secret'
    assert room.scores == {TEAM_A: 0, TEAM_B: 0}
    assert room.rotation == 0


def test_full_round_apple(full_room, emitter):
    room = full_room()
    room.start_game(0)

    assert room.submit_secret(0, '  APPLE  ')
    assert room.phase.name == 'clue'
    assert room.submit_clue(1, 'fruit and more')
    assert room.phase.name == 'guess'
    assert room.phase.clue == 'fruit'
    assert room.phase.time_left == 30

    assert room.submit_guess(2, 'apple')
    assert room.scores[TEAM_B] == 1
    assert room.scores[TEAM_A] == 0
    assert room.rotation == 1
    assert room.phase.name == 'roundOver'

    room.clock.advance(2)
    assert room.phase.name == 'roundOver'
    room.clock.advance(1)
    assert room.phase.name == 'secret'
    assert room.current_round().secret_holder == 1
    assert emitter.last('s3', 'game_state')['phase'] == 'secret'


def test_secret_only_visible_to_holder_and_receiver(full_room, emitter):
    room = full_room()
    room.join('watcher', name='Watcher')
    room.start_game(0)
    room.submit_secret(0, 'APPLE')

    assert emitter.last('s0', 'game_state')['secret_word'] == 'APPLE'
    assert emitter.last('s1', 'game_state')['secret_word'] == 'APPLE'
    assert emitter.last('s2', 'game_state')['secret_word'] is None
    assert emitter.last('s3', 'game_state')['secret_word'] is None
    assert emitter.last('watcher', 'game_state')['secret_word'] is None
    assert emitter.last('watcher', 'game_state')['my_slot'] == -1


def test_second_round_secret_goes_to_new_pair(full_room, emitter):
    room = full_room()
    room.start_game(0)
    _play_correct_round(room)
    room.clock.advance(3)
    assert room.current_round().secret_holder == 1
    assert room.submit_secret(1, 'PEAR')

    assert emitter.last('s1', 'game_state')['secret_word'] == 'PEAR'
    assert emitter.last('s2', 'game_state')['secret_word'] == 'PEAR'
    assert emitter.last('s0', 'game_state')['secret_word'] is None
    assert emitter.last('s3', 'game_state')['secret_word'] is None


def test_secret_hidden_from_guessers_during_guess(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.submit_clue(1, 'fruit')
    assert room.phase.name == 'guess'

    for sid, expected in (('s0', 'APPLE'), ('s1', 'APPLE'), ('s2', None), ('s3', None)):
        state = emitter.last(sid, 'game_state')
        assert state['phase'] == 'guess'
        assert state['secret_word'] == expected


def test_round_over_shows_secret_to_finished_pair(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.submit_clue(1, 'fruit')
    room.submit_guess(2, 'apple')
    assert room.phase.name == 'roundOver'
    assert room.rotation == 1

    assert emitter.last('s0', 'game_state')['secret_word'] == 'APPLE'
    assert emitter.last('s1', 'game_state')['secret_word'] == 'APPLE'
    assert emitter.last('s2', 'game_state')['secret_word'] is None
    assert emitter.last('s3', 'game_state')['secret_word'] is None


def test_non_owner_submissions_are_ignored(full_room):
    room = full_room()
    room.start_game(0)
    for slot in (1, 2, 3):
        assert not room.submit_secret(slot, 'nope')
    assert room.phase.name == 'secret'

    room.submit_secret(0, 'APPLE')
    for slot in (0, 2, 3):
        assert not room.submit_clue(slot, 'nope')
    assert room.phase.name == 'clue'
    assert room.clues == []

    room.submit_clue(1, 'fruit')
    before = (room.phase.name, dict(room.scores), list(room.clues), room.turn)
    for slot in (0, 1, 3, -1):
        assert not room.submit_guess(slot, 'apple')
    assert (room.phase.name, dict(room.scores), list(room.clues), room.turn) == before


def test_empty_words_are_ignored(full_room):
    room = full_room()
    room.start_game(0)
    assert not room.submit_secret(0, '   ')
    assert not room.submit_secret(0, None)
    assert room.phase.name == 'secret'


def test_wrong_guess_moves_to_next_turn(full_room):
    room = full_room()
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.submit_clue(1, 'fruit')
    assert room.submit_guess(2, 'banana')

    assert room.phase.name == 'clue'
    assert room.turn == 1
    assert room.scores == {TEAM_A: 0, TEAM_B: 0}
    assert room.clues[-1]['wrong'] is True
    cfg = room.current_round()
    assert (cfg.clue_giver, cfg.guesser) == (0, 3)
    assert not room.timers.active('guess')


def test_guess_timer_expiry_swaps_pair(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.submit_clue(1, 'fruit')

    room.clock.advance(29)
    assert room.phase.name == 'guess'
    assert room.phase.time_left == 1
    room.clock.advance(1)

    assert room.phase.name == 'clue'
    assert room.turn == 1
    assert room.scores == {TEAM_A: 0, TEAM_B: 0}
    cfg = room.current_round()
    assert (cfg.clue_giver, cfg.guesser) == (0, 3)
    ticks = emitter.events('s2', 'tick')
    assert len(ticks) == 29
    assert ticks[0] == {'kind': 'guess', 'time_left': 29}


def test_unlimited_guess_time_runs_no_timer(full_room):
    room = full_room()
    assert room.set_guess_time(0, 0)
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.submit_clue(1, 'fruit')
    assert room.phase.time_left is None
    assert not room.timers.active('guess')
    room.clock.advance(600)
    assert room.phase.name == 'guess'


def test_rotation_cycles_once_per_correct_guess(full_room):
    room = full_room()
    room.start_game(0)
    seen = []
    for _ in range(5):
        _play_correct_round(room)
        seen.append(room.rotation)
        room.clock.advance(3)
    assert seen == [1, 2, 3, 0, 1]


def test_ten_nine_continues(full_room):
    room = full_room()
    room.start_game(0)
    room.scores = {TEAM_A: 10, TEAM_B: 8}
    # Rotation 0 guesser is seat 2 (team B)
    _play_correct_round(room)
    assert room.scores == {TEAM_A: 10, TEAM_B: 9}
    assert room.phase.name == 'roundOver'


def test_ten_eight_ends_game(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.scores = {TEAM_A: 8, TEAM_B: 9}
    _play_correct_round(room)
    assert room.scores == {TEAM_A: 8, TEAM_B: 10}
    assert room.phase.name == 'gameOver'
    assert room.phase.winner == TEAM_B
    assert emitter.last('s0', 'game_state')['winner'] == TEAM_B
    room.clock.advance(60)
    assert room.phase.name == 'gameOver'


def test_game_over_persists_stats(app_ctx, make_room, store):
    users = []
    for i in range(4):
        user = User(username=f'igrac{i}', email=f'igrac{i}@example.com')
        user.set_password('password')
        db.session.add(user)
        users.append(user)
    db.session.commit()
    ids = [u.id for u in users]
    store.create_room('WIN234', 'Finals', ids[0])

    room = make_room(code='WIN234', creator_id=ids[0])
    for i, uid in enumerate(ids):
        room.join(f's{i}', user_id=uid, profile=store.get_profile(uid))
    assert room.seats[2].name == 'igrac2'
    assert room.set_win_score(0, 3)
    room.start_game(0)
    assert store.find_room('WIN234')['status'] == 'playing'

    room.scores = {TEAM_A: 0, TEAM_B: 2}
    _play_correct_round(room)
    assert room.phase.name == 'gameOver'

    assert store.find_room('WIN234')['status'] == 'finished'
    winners = [store.get_profile(ids[1]), store.get_profile(ids[2])]
    losers = [store.get_profile(ids[0]), store.get_profile(ids[3])]
    assert all(p['games_won'] == 1 and p['games_played'] == 1 for p in winners)
    assert all(p['games_won'] == 0 and p['games_played'] == 1 for p in losers)
    assert room.seats[1].profile['games_won'] == 1


def test_countdown_starts_game_when_full(full_room, emitter):
    room = full_room()
    assert room.start_countdown(0, 2)
    assert room.phase.name == 'countdown'
    assert room.phase.remaining == 5
    room.clock.advance(4)
    assert emitter.last('s1', 'tick') == {'kind': 'countdown', 'time_left': 1}
    room.clock.advance(1)
    assert room.phase.name == 'secret'


def test_countdown_falls_back_to_lobby_when_seats_missing(make_room):
    room = make_room()
    room.join('s0', name='P0')
    assert room.start_countdown(0, 10)
    room.clock.advance(10)
    assert room.phase.name == 'lobby'


def test_countdown_cancel_and_guards(full_room):
    room = full_room()
    assert not room.start_countdown(1, 10)
    assert not room.start_countdown(0, 'soon')
    assert room.start_countdown(0, 1000)
    assert room.phase.remaining == 300
    assert not room.cancel_countdown(2)
    assert room.cancel_countdown(0)
    assert room.phase.name == 'lobby'
    room.clock.advance(400)
    assert room.phase.name == 'lobby'


def test_start_is_refused_while_counting_down(full_room):
    room = full_room()
    assert room.start_countdown(0, 10)
    assert not room.start_game(0)
    assert room.phase.name == 'countdown'
    room.clock.advance(10)
    assert room.phase.name == 'secret'


def test_settings_validation(full_room):
    room = full_room()
    assert not room.set_win_score(0, 2)
    assert not room.set_win_score(0, 51)
    assert not room.set_win_score(1, 15)
    assert room.set_win_score(0, '15')
    assert room.win_score == 15

    assert not room.set_guess_time(0, 5)
    assert not room.set_guess_time(0, 121)
    assert room.set_guess_time(0, 45)
    assert room.guess_time == 45

    assert not room.set_schedule(0, 'tomorrow-ish')
    assert room.set_schedule(0, '2026-11-01T18:00:00')
    assert room.scheduled_start == '2026-11-01T18:00:00'
    assert room.set_schedule(0, None)
    assert room.scheduled_start is None

    room.start_game(0)
    assert not room.set_win_score(0, 20)


def test_reset_keeps_connected_seats(full_room, emitter):
    room = full_room()
    room.start_game(0)
    room.submit_secret(0, 'APPLE')
    room.disconnect('s3')
    assert room.seats[3].disconnected

    assert not room.reset(1)
    assert room.reset(0)
    assert room.phase.name == 'lobby'
    assert room.scores == {TEAM_A: 0, TEAM_B: 0}
    assert room.clues == []
    assert room.seats[3].empty
    assert [room.seats[i].sid for i in range(3)] == ['s0', 's1', 's2']
    assert emitter.events('s1', 'game_reset')
    assert room.admin_slot == 0


def test_player_name_fallback_and_assignment(make_room, emitter):
    room = make_room()
    room.join('s0')
    room.join('s1', name='  Mila  ')
    assert room.seats[0].name == 'Player 1'
    assert room.seats[1].name == 'Mila'
    assigned = emitter.last('s1', 'assigned')
    assert assigned['slot'] == 1
    assert assigned['team'] == TEAM_B
    assert assigned['reconnect_token']


def test_fifth_connection_spectates(full_room, emitter):
    room = full_room()
    assert room.join('s4', name='Late') == -1
    assert emitter.last('s4', 'assigned')['slot'] == -1
    assert emitter.last('s0', 'lobby_state')['spectators'] == 1


def test_admin_passes_to_next_connected_seat(full_room):
    room = full_room()
    room.leave('s0')
    assert room.admin_slot == 1
    assert room.seats[0].empty


def test_move_seat_rules(make_room):
    room = make_room()
    for i in range(3):
        room.join(f's{i}', name=f'P{i}')

    # Non-admin may only move themselves into an empty seat
    assert not room.move_seat(1, 2, 3)
    assert not room.move_seat(1, 1, 0)
    assert room.move_seat(1, 1, 3)
    assert room.slot_of('s1') == 3
    assert room.seats[1].empty

    # Admin may swap occupied seats and keeps admin on their own seat
    assert room.move_seat(0, 0, 2)
    assert room.slot_of('s0') == 2
    assert room.slot_of('s2') == 0
    assert room.admin_slot == 2


def test_randomize_seats_keeps_everyone_seated(full_room):
    room = full_room()
    assert not room.randomize_seats(1)
    assert room.randomize_seats(0)
    assert sorted(seat.sid for seat in room.seats) == ['s0', 's1', 's2', 's3']
    for slot, seat in enumerate(room.seats):
        assert room.slot_of(seat.sid) == slot
    assert room.seats[room.admin_slot].sid == 's0'


def test_kick_makes_spectator(full_room, emitter):
    room = full_room()
    assert not room.kick(1, 2)
    assert room.kick(0, 2)
    assert room.seats[2].empty
    assert room.slot_of('s2') == -1
    assert emitter.last('s2', 'kicked') == {'room_code': 'ABC234', 'slot': 2}
    assert room.join('s5', name='New') == 2


def test_chat_history_is_capped(make_room, emitter):
    room = make_room(CHAT_HISTORY_LIMIT=3)
    room.join('s0', name='P0')
    for i in range(5):
        assert room.send_chat('s0', f'hello {i}')
    assert not room.send_chat('s0', '   ')
    assert not room.send_chat('ghost', 'hi')
    assert [m['text'] for m in room.chat] == ['hello 2', 'hello 3', 'hello 4']
    assert emitter.last('s0', 'chat_message')['name'] == 'P0'


def test_fill_with_bots(make_room, emitter):
    room = make_room()
    room.join('s0', name='P0')
    assert room.fill_with_bots() == 3
    assert room.all_seats_filled()
    assert room.seats[2].bot
    assert room.admin_slot == 0
    assert room.start_game(0)
    assert not any(to.startswith('bot:') for _, _, to in emitter.sent)
