"""Match lifecycle: waiting -> in_progress -> ended.

A match is created by its host, gains exactly one guest, and is closed once
by declaring a winner. Every transition re-reads the match inside the
per-match lock and writes with a conditional UPDATE, so a stale read can
never let two guests in or end a match twice.
"""

import re
from typing import List, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from matatena import db
from matatena.errors import Conflict, Forbidden, InvalidInput, NotFound, PersistenceFailure
from matatena.models import Match, generate_match_code, utcnow
from .locks import match_locks
from .rooms import room_broadcaster

_INTEGER = re.compile(r'-?[0-9]+')


def parse_int(value, field: str) -> int:
    """Accept an int (not a bool) or a string of ASCII digits; nothing else."""
    if value is None:
        raise InvalidInput(f'{field} is required')
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise InvalidInput(f'{field} must be an integer')


def commit_or_fail(message: str = 'Database error') -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[db-error] {message}: {exc}")
        raise PersistenceFailure(message) from exc


def load_match(match_id: str) -> Optional[Match]:
    """Fetch the match row, discarding whatever the session had cached."""
    return Match.query.populate_existing().filter_by(id=match_id).first()


def get_match(match_id: Optional[str] = None, code: Optional[str] = None) -> Match:
    if match_id:
        match = load_match(str(match_id))
    elif code:
        if not current_app.config.get('MATCH_CODES_ENABLED', True):
            raise InvalidInput('Joining by code is disabled')
        if not isinstance(code, str):
            raise InvalidInput('Match code must be a string')
        match = Match.query.populate_existing().filter_by(code=code.strip().upper()).first()
    else:
        raise InvalidInput('A match id or code is required')
    if match is None:
        raise NotFound('Match not found')
    return match


def create_match(host_id: int) -> Match:
    cfg = current_app.config
    while True:
        code = None
        if cfg.get('MATCH_CODES_ENABLED', True):
            code = generate_match_code(int(cfg.get('MATCH_CODE_LENGTH', 5)))
        match = Match(host_id=host_id, code=code)
        db.session.add(match)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            # Another match took the code between the check and the insert
            if code and Match.query.filter_by(code=code).first():
                current_app.logger.info(f"[match-create] code collision on {code}, retrying")
                continue
            raise PersistenceFailure('Could not create match') from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure('Could not create match') from exc
        current_app.logger.info(f"[match-create] match={match.id} code={match.code} host={host_id}")
        return match


def join_match(account_id: int, match_id: Optional[str] = None, code: Optional[str] = None) -> Match:
    match = get_match(match_id=match_id, code=code)
    with match_locks.hold(match.id):
        match = load_match(match.id)
        if match.is_ended:
            raise Conflict('Match already ended')
        if match.host_id == account_id:
            raise Forbidden('You cannot join your own match')
        if match.guest_id is not None:
            if match.guest_id == account_id:
                return match
            raise Conflict('Match already full')

        updated = Match.query.filter(
            Match.id == match.id,
            Match.guest_id.is_(None),
            Match.winner_id.is_(None),
        ).update({Match.guest_id: account_id}, synchronize_session=False)
        if updated != 1:
            db.session.rollback()
            raise Conflict('Match already full')
        commit_or_fail('Could not join match')

        match = load_match(match.id)
        current_app.logger.info(f"[match-join] match={match.id} guest={account_id}")
        room_broadcaster.participant_joined(match)
    return match


def end_match(account_id: int, match_id: str, winner_id) -> Match:
    match = get_match(match_id=match_id)
    with match_locks.hold(match.id):
        match = load_match(match.id)
        if match.is_ended:
            raise Conflict('Match already ended')
        if not match.is_participant(account_id):
            raise Forbidden('You are not a player in this match')
        winner_id = parse_int(winner_id, 'winner_id')
        if match.guest_id is None:
            raise Conflict('Match is still waiting for an opponent')
        if winner_id not in (match.host_id, match.guest_id):
            raise Forbidden('The winner must be one of the players')

        updated = Match.query.filter(
            Match.id == match.id,
            Match.winner_id.is_(None),
        ).update({Match.winner_id: winner_id, Match.ended_at: utcnow()}, synchronize_session=False)
        if updated != 1:
            db.session.rollback()
            raise Conflict('Match already ended')
        commit_or_fail('Could not end match')

        match = load_match(match.id)
        current_app.logger.info(f"[match-end] match={match.id} winner={winner_id} by={account_id}")
        room_broadcaster.match_ended(match)
    return match


def list_active_matches(account_id: int) -> List[Match]:
    return (
        Match.query
        .filter(or_(Match.host_id == account_id, Match.guest_id == account_id))
        .filter(Match.winner_id.is_(None))
        .order_by(Match.started_at.desc())
        .all()
    )
