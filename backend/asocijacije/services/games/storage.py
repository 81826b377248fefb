from typing import List, Optional

from sqlalchemy import and_, or_

from asocijacije import db
from asocijacije.models import Friendship, RoomParticipant, RoomRecord, User


class Store:
    """Durable records behind the room engine.

    Every call opens its own application context so rooms can persist from
    timer callbacks as well as from socket handlers. Writes are best-effort:
    a failure rolls back, gets logged, and the in-memory game carries on.
    """

    def __init__(self, app):
        self.app = app

    def _write(self, label, fn) -> bool:
        with self.app.app_context():
            try:
                fn()
                db.session.commit()
                return True
            except Exception:
                db.session.rollback()
                self.app.logger.exception(f"[store-error] {label} failed")
                return False

    # Profiles

    def get_profile(self, user_id) -> Optional[dict]:
        if not user_id:
            return None
        with self.app.app_context():
            user = db.session.get(User, user_id)
            return user.to_dict() if user else None

    def find_user_by_username(self, username) -> Optional[dict]:
        with self.app.app_context():
            user = User.query.filter_by(username=username).first()
            return user.to_dict() if user else None

    def add_game_played(self, user_id) -> bool:
        def _bump():
            User.query.filter_by(id=user_id).update({User.games_played: User.games_played + 1})
        return self._write(f"add_game_played user={user_id}", _bump)

    def add_game_won(self, user_id) -> bool:
        def _bump():
            User.query.filter_by(id=user_id).update({
                User.games_won: User.games_won + 1,
                User.games_played: User.games_played + 1,
            })
        return self._write(f"add_game_won user={user_id}", _bump)

    # Rooms

    def create_room(self, code, name, created_by, scheduled_start=None) -> Optional[dict]:
        record = {}

        def _insert():
            room = RoomRecord(code=code, name=name, created_by=created_by, scheduled_start=scheduled_start)
            db.session.add(room)
            db.session.flush()
            record.update(room.to_dict())

        if not self._write(f"create_room code={code}", _insert):
            return None
        return record

    def find_room(self, code) -> Optional[dict]:
        with self.app.app_context():
            room = RoomRecord.query.filter_by(code=code).first()
            return room.to_dict() if room else None

    def update_room_status(self, code, status) -> bool:
        def _update():
            RoomRecord.query.filter_by(code=code).update({RoomRecord.status: status})
        return self._write(f"update_room_status code={code} status={status}", _update)

    def update_room_schedule(self, code, scheduled_start) -> bool:
        def _update():
            RoomRecord.query.filter_by(code=code).update({RoomRecord.scheduled_start: scheduled_start})
        return self._write(f"update_room_schedule code={code}", _update)

    def rooms_by_user(self, user_id) -> List[dict]:
        with self.app.app_context():
            rooms = (
                RoomRecord.query.filter_by(created_by=user_id)
                .order_by(RoomRecord.created_at.desc())
                .limit(20)
                .all()
            )
            return [r.to_dict() for r in rooms]

    def my_games(self, user_id) -> List[dict]:
        with self.app.app_context():
            rows = (
                db.session.query(RoomRecord, RoomParticipant.slot)
                .join(RoomParticipant, RoomParticipant.room_code == RoomRecord.code)
                .filter(RoomParticipant.user_id == user_id, RoomRecord.status != 'finished')
                .order_by(RoomRecord.updated_at.desc())
                .limit(20)
                .all()
            )
            return [dict(room.to_dict(), slot=slot) for room, slot in rows]

    def delete_room(self, code, user_id) -> bool:
        deleted = []

        def _delete():
            room = RoomRecord.query.filter_by(code=code, created_by=user_id).first()
            if room is None:
                return
            RoomParticipant.query.filter_by(room_code=code).delete()
            db.session.delete(room)
            deleted.append(code)

        return self._write(f"delete_room code={code}", _delete) and bool(deleted)

    # Participants

    def add_participant(self, code, user_id, slot) -> bool:
        def _upsert():
            row = RoomParticipant.query.filter_by(room_code=code, user_id=user_id).first()
            if row is None:
                db.session.add(RoomParticipant(room_code=code, user_id=user_id, slot=slot))
            else:
                row.slot = slot
        return self._write(f"add_participant code={code} user={user_id}", _upsert)

    def remove_participant(self, code, user_id) -> bool:
        def _delete():
            RoomParticipant.query.filter_by(room_code=code, user_id=user_id).delete()
        return self._write(f"remove_participant code={code} user={user_id}", _delete)

    def remove_all_participants(self, code) -> bool:
        def _delete():
            RoomParticipant.query.filter_by(room_code=code).delete()
        return self._write(f"remove_all_participants code={code}", _delete)

    # Friendships

    def send_friend_request(self, user_id, friend_id) -> bool:
        if user_id == friend_id:
            return False
        sent = []

        def _insert():
            existing = Friendship.query.filter(_pair(user_id, friend_id)).first()
            if existing is not None:
                return
            db.session.add(Friendship(user_id=user_id, friend_id=friend_id, status='pending'))
            sent.append(friend_id)

        return self._write(f"send_friend_request {user_id}->{friend_id}", _insert) and bool(sent)

    def accept_friend_request(self, user_id, requester_id) -> bool:
        accepted = []

        def _update():
            count = Friendship.query.filter_by(
                user_id=requester_id, friend_id=user_id, status='pending'
            ).update({Friendship.status: 'accepted'})
            if count:
                accepted.append(requester_id)

        return self._write(f"accept_friend_request {requester_id}->{user_id}", _update) and bool(accepted)

    def remove_friendship(self, user_id, friend_id) -> bool:
        def _delete():
            Friendship.query.filter(_pair(user_id, friend_id)).delete(synchronize_session=False)
        return self._write(f"remove_friendship {user_id}<->{friend_id}", _delete)

    def list_friends(self, user_id) -> List[dict]:
        with self.app.app_context():
            links = Friendship.query.filter(
                or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
                Friendship.status == 'accepted',
            ).all()
            friend_ids = [f.friend_id if f.user_id == user_id else f.user_id for f in links]
            if not friend_ids:
                return []
            return [u.to_dict() for u in User.query.filter(User.id.in_(friend_ids)).all()]

    def pending_requests(self, user_id) -> List[dict]:
        with self.app.app_context():
            requester_ids = [
                f.user_id for f in Friendship.query.filter_by(friend_id=user_id, status='pending').all()
            ]
            if not requester_ids:
                return []
            return [u.to_dict() for u in User.query.filter(User.id.in_(requester_ids)).all()]


def _pair(a, b):
    return or_(
        and_(Friendship.user_id == a, Friendship.friend_id == b),
        and_(Friendship.user_id == b, Friendship.friend_id == a),
    )
