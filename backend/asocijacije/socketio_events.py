from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit
from asocijacije import socketio
from asocijacije.services.games.registry import normalize_code
from typing import Any, Dict, Optional, Set
from datetime import datetime

# Connection bookkeeping: which room each socket is in, and which sockets
# belong to each signed-in user (for friend notifications and invites).
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_user_sids: Dict[int, Set[str]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _registry():
    return current_app.extensions['rooms']


def _store():
    return current_app.extensions['store']


def _user_id() -> Optional[int]:
    if current_user.is_authenticated:
        return current_user.id
    return None


def _error(code: str, message: str) -> None:
    emit('error', {'code': code, 'message': message})


def _data(data) -> dict:
    return data if isinstance(data, dict) else {}


def _word(data):
    if isinstance(data, dict):
        return data.get('word')
    return data


def _current_room():
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx:
        return None, -1
    room = _registry().get(ctx['room_code'])
    if room is None:
        return None, -1
    return room, room.slot_of(_get_sid())


def _send_to_user(user_id: int, event: str, payload: dict) -> bool:
    sids = list(_user_sids.get(user_id, ()))
    for sid in sids:
        socketio.emit(event, payload, to=sid, namespace='/ws')
    return bool(sids)


# ---- Connection lifecycle ----

def handle_connect(auth=None):
    user_id = _user_id()
    if user_id is not None:
        _user_sids.setdefault(user_id, set()).add(_get_sid())
    emit('connected', {
        'message': 'Connected to /ws',
        'user': _store().get_profile(user_id) if user_id else None,
    })


def handle_disconnect(reason=None):
    sid = _get_sid()
    for user_id in [uid for uid, sids in _user_sids.items() if sid in sids]:
        _user_sids[user_id].discard(sid)
        if not _user_sids[user_id]:
            del _user_sids[user_id]
    ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return
    room = _registry().get(ctx['room_code'])
    if room is not None:
        room.disconnect(sid)
        _registry().track(room)


def handle_ping(data=None):
    emit('pong', data or {})


# ---- Room management ----

def handle_create_room(data=None):
    data = _data(data)
    user_id = _user_id()
    if user_id is None:
        _error('unauthorized', 'Sign in to create a room')
        return
    name = str(data.get('name') or '').strip()[:40]
    if not name:
        _error('invalid_name', 'Room name is required')
        return
    scheduled_start = data.get('scheduled_start') or None
    if scheduled_start is not None:
        try:
            scheduled_start = datetime.fromisoformat(str(scheduled_start)).isoformat()
        except ValueError:
            _error('invalid_schedule', 'scheduled_start must be an ISO-8601 date')
            return
    room = _registry().create(name, user_id, scheduled_start)
    if room is None:
        _error('create_failed', 'Could not create the room')
        return
    emit('room_created', room.summary())


def handle_list_rooms(data=None):
    emit('room_list', {'rooms': _registry().public_rooms()})


def handle_my_rooms(data=None):
    user_id = _user_id()
    if user_id is None:
        _error('unauthorized', 'Sign in to list your rooms')
        return
    emit('my_rooms', {
        'created': _store().rooms_by_user(user_id),
        'playing': _store().my_games(user_id),
    })


def handle_join_room(data=None):
    data = _data(data)
    code = normalize_code(data.get('code'))
    if code is None:
        _error('invalid_code', 'Room code must be 6 characters')
        return
    room = _registry().get_or_load(code)
    if room is None:
        _error('room_not_found', f'Room {code} does not exist')
        return

    sid = _get_sid()
    ctx = _sid_to_ctx.get(sid)
    if ctx and ctx['room_code'] != code:
        _leave_current(sid)

    user_id = _user_id()
    with room.lock:
        history = list(room.chat)
    emit('room_joined', {'room_code': code, 'name': room.name, 'chat': history})
    _sid_to_ctx[sid] = {'room_code': code}
    room.join(
        sid,
        name=data.get('name'),
        user_id=user_id,
        profile=_store().get_profile(user_id) if user_id else None,
        token=data.get('token'),
    )
    _registry().track(room)


def _leave_current(sid: str) -> Optional[str]:
    ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return None
    room = _registry().get(ctx['room_code'])
    if room is not None:
        room.leave(sid)
        _registry().track(room)
    return ctx['room_code']


def handle_leave_room(data=None):
    code = _leave_current(_get_sid())
    if code:
        emit('room_left', {'room_code': code})


def handle_delete_room(data=None):
    data = _data(data)
    user_id = _user_id()
    if user_id is None:
        _error('unauthorized', 'Sign in to delete a room')
        return
    code = normalize_code(data.get('code'))
    if code is None:
        _error('invalid_code', 'Room code must be 6 characters')
        return
    record = _store().find_room(code)
    if record is None:
        _error('room_not_found', f'Room {code} does not exist')
        return
    if record.get('created_by') != user_id:
        _error('forbidden', 'Only the creator can delete this room')
        return
    if not _store().delete_room(code, user_id):
        _error('delete_failed', 'Could not delete the room')
        return

    sid = _get_sid()
    room = _registry().get(code)
    was_member = room is not None and sid in room.participants
    _registry().remove(code)
    for other_sid, ctx in list(_sid_to_ctx.items()):
        if ctx.get('room_code') == code:
            del _sid_to_ctx[other_sid]
    if not was_member:
        emit('room_deleted', {'room_code': code})


# ---- Seat management and settings ----

def handle_kick_seat(data=None):
    room, slot = _current_room()
    if room is not None:
        room.kick(slot, _data(data).get('slot'))


def handle_move_seat(data=None):
    data = _data(data)
    room, slot = _current_room()
    if room is not None:
        room.move_seat(slot, data.get('from'), data.get('to'))


def handle_randomize_seats(data=None):
    room, slot = _current_room()
    if room is not None:
        room.randomize_seats(slot)


def handle_set_win_score(data=None):
    room, slot = _current_room()
    if room is not None:
        room.set_win_score(slot, _data(data).get('value'))


def handle_set_guess_time(data=None):
    room, slot = _current_room()
    if room is not None:
        room.set_guess_time(slot, _data(data).get('value'))


def handle_set_schedule(data=None):
    room, slot = _current_room()
    if room is not None:
        room.set_schedule(slot, _data(data).get('value'))


def handle_chat_message(data=None):
    room, _ = _current_room()
    if room is None:
        return
    text = data.get('text') if isinstance(data, dict) else data
    room.send_chat(_get_sid(), text)


# ---- Game flow ----

def handle_start_game(data=None):
    room, slot = _current_room()
    if room is not None:
        room.start_game(slot)


def handle_start_countdown(data=None):
    room, slot = _current_room()
    if room is not None:
        room.start_countdown(slot, _data(data).get('seconds'))


def handle_cancel_countdown(data=None):
    room, slot = _current_room()
    if room is not None:
        room.cancel_countdown(slot)


def handle_submit_secret(data=None):
    room, slot = _current_room()
    if room is not None:
        room.submit_secret(slot, _word(data))


def handle_submit_clue(data=None):
    room, slot = _current_room()
    if room is not None:
        room.submit_clue(slot, _word(data))


def handle_submit_guess(data=None):
    room, slot = _current_room()
    if room is not None:
        room.submit_guess(slot, _word(data))


def handle_reset_game(data=None):
    room, slot = _current_room()
    if room is not None:
        room.reset(slot)


def handle_start_quiz(data=None):
    room, slot = _current_room()
    if room is not None:
        room.start_quiz(slot)


def handle_stop_quiz(data=None):
    room, slot = _current_room()
    if room is not None:
        room.stop_quiz(slot)


# ---- Friends ----

def _friend_payload(user_id: int) -> dict:
    friends = _store().list_friends(user_id)
    for friend in friends:
        friend['online'] = bool(_user_sids.get(friend['id']))
    return {'friends': friends, 'pending': _store().pending_requests(user_id)}


def _push_friend_list(user_id: int) -> None:
    _send_to_user(user_id, 'friend_list', _friend_payload(user_id))


def handle_list_friends(data=None):
    user_id = _user_id()
    if user_id is None:
        _error('unauthorized', 'Sign in to see friends')
        return
    emit('friend_list', _friend_payload(user_id))


def handle_friend_request(data=None):
    user_id = _user_id()
    if user_id is None:
        _error('unauthorized', 'Sign in to add friends')
        return
    target = _store().find_user_by_username(str(_data(data).get('username') or '').strip())
    if target is None:
        _error('user_not_found', 'No user with that name')
        return
    if not _store().send_friend_request(user_id, target['id']):
        _error('friend_request_failed', 'Request already exists or is not allowed')
        return
    _send_to_user(target['id'], 'friend_request', {'from': _store().get_profile(user_id)})
    _push_friend_list(target['id'])
    emit('friend_list', _friend_payload(user_id))


def handle_accept_friend(data=None):
    user_id = _user_id()
    if user_id is None:
        return
    requester_id = _data(data).get('user_id')
    if _store().accept_friend_request(user_id, requester_id):
        _push_friend_list(requester_id)
    emit('friend_list', _friend_payload(user_id))


def handle_remove_friend(data=None):
    user_id = _user_id()
    if user_id is None:
        return
    friend_id = _data(data).get('user_id')
    _store().remove_friendship(user_id, friend_id)
    _push_friend_list(friend_id)
    emit('friend_list', _friend_payload(user_id))


def handle_invite_friend(data=None):
    user_id = _user_id()
    room, _ = _current_room()
    if user_id is None or room is None:
        return
    friend_id = _data(data).get('user_id')
    if friend_id not in {f['id'] for f in _store().list_friends(user_id)}:
        return
    _send_to_user(friend_id, 'room_invite', {
        'room_code': room.code,
        'room_name': room.name,
        'from': _store().get_profile(user_id),
    })


# ---- Test mode ----

def _is_test_user() -> bool:
    username = current_app.config.get('TEST_MODE_USERNAME')
    return bool(username) and current_user.is_authenticated and current_user.username == username


def handle_test_fill(data=None):
    room, _ = _current_room()
    if room is None or not _is_test_user():
        return
    room.fill_with_bots()


def handle_test_act_as(data=None):
    room, _ = _current_room()
    if room is None or not _is_test_user():
        return
    data = _data(data)
    action = {
        'secret': room.submit_secret,
        'clue': room.submit_clue,
        'guess': room.submit_guess,
    }.get(data.get('action'))
    if action is not None:
        action(data.get('slot'), data.get('word'))


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'ping': handle_ping,
    'create_room': handle_create_room,
    'list_rooms': handle_list_rooms,
    'my_rooms': handle_my_rooms,
    'join_room': handle_join_room,
    'leave_room': handle_leave_room,
    'delete_room': handle_delete_room,
    'kick_seat': handle_kick_seat,
    'chat_message': handle_chat_message,
    'move_seat': handle_move_seat,
    'randomize_seats': handle_randomize_seats,
    'set_win_score': handle_set_win_score,
    'set_guess_time': handle_set_guess_time,
    'set_schedule': handle_set_schedule,
    'start_game': handle_start_game,
    'start_countdown': handle_start_countdown,
    'cancel_countdown': handle_cancel_countdown,
    'submit_secret': handle_submit_secret,
    'submit_clue': handle_submit_clue,
    'submit_guess': handle_submit_guess,
    'reset_game': handle_reset_game,
    'start_quiz': handle_start_quiz,
    'stop_quiz': handle_stop_quiz,
    'friend_request': handle_friend_request,
    'accept_friend': handle_accept_friend,
    'remove_friend': handle_remove_friend,
    'list_friends': handle_list_friends,
    'invite_friend': handle_invite_friend,
    'test_fill': handle_test_fill,
    'test_act_as': handle_test_act_as,
}


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')
