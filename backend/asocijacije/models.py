from asocijacije import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    avatar = db.Column(db.String(16), default='😀', nullable=False)
    games_played = db.Column(db.Integer, default=0, nullable=False)
    games_won = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'avatar': self.avatar,
            'games_played': self.games_played,
            'games_won': self.games_won,
        }


class Friendship(db.Model):
    __tablename__ = 'friendship'
    __table_args__ = (db.UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    friend_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    status = db.Column(db.String(16), default='pending', nullable=False)  # pending, accepted
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class RoomRecord(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False, default='Game Room')
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    scheduled_start = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), default='lobby', nullable=False)  # lobby, playing, finished
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            'code': self.code,
            'name': self.name,
            'created_by': self.created_by,
            'scheduled_start': self.scheduled_start,
            'status': self.status,
        }


class RoomParticipant(db.Model):
    __tablename__ = 'room_participant'
    __table_args__ = (db.UniqueConstraint('room_code', 'user_id', name='uq_room_participant'),)
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(6), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    slot = db.Column(db.Integer, nullable=False)
