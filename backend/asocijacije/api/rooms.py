from flask import Blueprint, jsonify, current_app


rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['rooms']


@rooms.route('', methods=['GET'])
def list_rooms():
    return jsonify({'rooms': _registry().public_rooms()}), 200


@rooms.route('/<code>', methods=['GET'])
def room_summary(code):
    room = _registry().get_or_load(code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    with room.lock:
        summary = room.summary()
        summary['win_score'] = room.win_score
        summary['guess_time'] = room.guess_time
    return jsonify(summary), 200
