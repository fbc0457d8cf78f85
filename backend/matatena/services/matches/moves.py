from typing import List, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from matatena import db
from matatena.errors import Conflict, Forbidden, InvalidInput, OutOfTurn, PersistenceFailure
from matatena.models import Account, DiceWeighting, Move
from .dice import roll_weighted_die
from .lifecycle import get_match, load_match, parse_int
from .locks import match_locks
from .rooms import room_broadcaster


def parse_column(value, columns: int) -> int:
    """Accept an int (or a string holding one) in ``0..columns-1``."""
    column = parse_int(value, 'column')
    if not 0 <= column < columns:
        raise InvalidInput(f'column must be between 0 and {columns - 1}')
    return column


def ensure_weighting(account_id: int) -> DiceWeighting:
    """Return the account's dice weighting, creating a uniform one if missing."""
    weighting = DiceWeighting.query.get(account_id)
    if weighting is not None:
        return weighting
    weighting = DiceWeighting.uniform(account_id)
    db.session.add(weighting)
    try:
        db.session.commit()
    except IntegrityError:
        # Materialized concurrently by a move in another match
        db.session.rollback()
        weighting = DiceWeighting.query.get(account_id)
        if weighting is None:
            raise PersistenceFailure('Could not load dice weighting')
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceFailure('Could not load dice weighting') from exc
    current_app.logger.info(f"[dice-weighting] account={account_id} initialized uniform")
    return weighting


def submit_move(match_id: str, account_id: int, column) -> Tuple[Move, str]:
    """Validate and record one move; the die is rolled here, never by the client.

    Turn order is derived from the last recorded move: nobody may move twice
    in a row, and either player may open the match.
    """
    match = get_match(match_id=match_id)
    with match_locks.hold(match.id):
        match = load_match(match.id)
        if not match.is_participant(account_id):
            raise Forbidden('You are not a player in this match')
        if match.is_ended:
            raise Conflict('Match already ended')
        if match.guest_id is None:
            raise Conflict('Match is still waiting for an opponent')
        column = parse_column(column, int(current_app.config.get('BOARD_COLUMNS', 3)))

        last = Move.query.filter_by(match_id=match.id).order_by(Move.seq.desc()).first()
        if last is not None and last.account_id == account_id:
            raise OutOfTurn('It is not your turn')
        next_seq = last.seq + 1 if last is not None else 1

        weighting = ensure_weighting(account_id)
        dice = roll_weighted_die(weighting.weights)

        move = Move(match_id=match.id, account_id=account_id, seq=next_seq, dice=dice, column=column)
        db.session.add(move)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict('Another move was recorded first, reload the match')
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceFailure('Could not record move') from exc

        username = Account.query.get(account_id).username
        current_app.logger.info(
            f"[move] match={move.match_id} seq={move.seq} account={account_id} dice={dice} column={column}"
        )
        # Emitted under the lock so clients see moves in seq order
        room_broadcaster.move_made(move, username)
    return move, username


def list_moves(match_id: str) -> List[Move]:
    match = get_match(match_id=match_id)
    return match.moves.all()
