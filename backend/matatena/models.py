from matatena import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import string
import random
import uuid

STATUS_WAITING = 'waiting'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_ENDED = 'ended'

DICE_FACES = (1, 2, 3, 4, 5, 6)
CODE_ALPHABET = string.ascii_uppercase + string.digits


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class Account(UserMixin, db.Model):
    __tablename__ = 'account'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


def generate_match_code(length=5):
    """Generate a short match code that no existing match uses."""
    while True:
        code = ''.join(random.choices(CODE_ALPHABET, k=length))
        if not Match.query.filter_by(code=code).first():
            return code


def generate_match_id():
    return uuid.uuid4().hex


class Match(db.Model):
    __tablename__ = 'match'
    id = db.Column(db.String(32), primary_key=True, default=generate_match_id)
    code = db.Column(db.String(16), unique=True, nullable=True, index=True)
    host_id = db.Column(db.Integer, db.ForeignKey('account.id'), nullable=False, index=True)
    guest_id = db.Column(db.Integer, db.ForeignKey('account.id'), nullable=True, index=True)
    winner_id = db.Column(db.Integer, db.ForeignKey('account.id'), nullable=True)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    ended_at = db.Column(db.DateTime, nullable=True)

    host = db.relationship('Account', foreign_keys=[host_id])
    guest = db.relationship('Account', foreign_keys=[guest_id])
    winner = db.relationship('Account', foreign_keys=[winner_id])
    moves = db.relationship('Move', back_populates='match', lazy='dynamic', order_by='Move.seq')

    @property
    def status(self):
        if self.winner_id is not None:
            return STATUS_ENDED
        if self.guest_id is None:
            return STATUS_WAITING
        return STATUS_IN_PROGRESS

    @property
    def is_ended(self):
        return self.status == STATUS_ENDED

    def is_participant(self, account_id):
        return account_id is not None and account_id in (self.host_id, self.guest_id)

    def opponent_of(self, account_id):
        if account_id == self.host_id:
            return self.guest
        if account_id == self.guest_id:
            return self.host
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'status': self.status,
            'host_id': self.host_id,
            'host_username': self.host.username if self.host else None,
            'guest_id': self.guest_id,
            'guest_username': self.guest.username if self.guest else None,
            'winner_id': self.winner_id,
            'winner_username': self.winner.username if self.winner else None,
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
        }


class Move(db.Model):
    __tablename__ = 'move'
    __table_args__ = (
        db.UniqueConstraint('match_id', 'seq', name='uq_move_match_seq'),
    )
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.String(32), db.ForeignKey('match.id'), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey('account.id'), nullable=False)
    # Position of the move within its match, 1-based
    seq = db.Column(db.Integer, nullable=False)
    dice = db.Column(db.Integer, nullable=False)
    column = db.Column('col', db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    match = db.relationship('Match', back_populates='moves')
    account = db.relationship('Account')

    def to_dict(self):
        return {
            'id': self.id,
            'match_id': self.match_id,
            'account_id': self.account_id,
            'username': self.account.username if self.account else None,
            'seq': self.seq,
            'dice': self.dice,
            'column': self.column,
            'created_at': _iso(self.created_at),
        }


class DiceWeighting(db.Model):
    """Per-account bias over the six die faces.

    Written by the economy side of the platform; matches only read it. A
    missing row is materialized as uniform the first time the account rolls.
    """
    __tablename__ = 'dice_weighting'
    account_id = db.Column(db.Integer, db.ForeignKey('account.id'), primary_key=True)
    dice_1 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    dice_2 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    dice_3 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    dice_4 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    dice_5 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    dice_6 = db.Column(db.Float, nullable=False, default=1.0 / 6)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @classmethod
    def uniform(cls, account_id):
        share = 1.0 / len(DICE_FACES)
        return cls(account_id=account_id, **{f'dice_{face}': share for face in DICE_FACES})

    @property
    def weights(self):
        return [getattr(self, f'dice_{face}') or 0.0 for face in DICE_FACES]
