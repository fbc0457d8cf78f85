import functools

from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit

from matatena import socketio
from matatena.errors import Forbidden, InvalidInput, MatchError, Unauthenticated
from matatena.services.matches import end_match, get_match, join_match, room_broadcaster, submit_move

NAMESPACE = '/ws'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data, *names):
    if isinstance(data, dict):
        for name in names:
            if data.get(name) is not None:
                return data.get(name)
        return None
    return data


def _acting_account_id() -> int:
    if not current_user.is_authenticated:
        raise Unauthenticated('Authentication required')
    return current_user.id


def _reply_errors(handler):
    """Turn a failed match operation into an ``error`` event for this socket only."""
    @functools.wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data)
        except MatchError as exc:
            current_app.logger.info(f"[ws-reject] event={handler.__name__} kind={exc.kind} reason={exc.message}")
            emit('error', exc.to_dict())
            return dict(exc.to_dict(), ok=False)
    return wrapper


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        current_app.logger.info(f"[ws-refuse] sid={_get_sid()} unauthenticated")
        return False
    current_app.logger.info(f"[ws-connect] sid={_get_sid()} account={current_user.id}")
    emit('connected', {'account': current_user.to_dict()})


def handle_disconnect(reason=None):
    # Leaving is not a game event: the room is cleaned up silently
    match_id = room_broadcaster.unsubscribe(_get_sid())
    current_app.logger.info(f"[ws-disconnect] sid={_get_sid()} match={match_id}")


@_reply_errors
def handle_join_match(data):
    account_id = _acting_account_id()
    match_id = _field(data, 'match_id', 'matchId')
    if not match_id:
        raise InvalidInput('match_id is required')
    match = get_match(match_id=str(match_id))
    if not match.is_participant(account_id):
        if match.guest_id is not None or match.is_ended:
            raise Forbidden('You are not a player in this match')
        # An open seat: joining over the socket takes it
        match = join_match(account_id, match_id=match.id)
    room_broadcaster.subscribe(_get_sid(), match.id, account_id)
    snapshot = room_broadcaster.snapshot(match, account_id)
    emit('gameJoined', snapshot)
    return dict(snapshot, ok=True)


@_reply_errors
def handle_make_move(data):
    account_id = _acting_account_id()
    match_id = _field(data, 'match_id', 'matchId')
    if not match_id or not isinstance(data, dict):
        raise InvalidInput('match_id and column are required')
    move, username = submit_move(str(match_id), account_id, data.get('column'))
    return dict(move.to_dict(), username=username, ok=True)


@_reply_errors
def handle_end_match(data):
    account_id = _acting_account_id()
    match_id = _field(data, 'match_id', 'matchId')
    if not match_id or not isinstance(data, dict):
        raise InvalidInput('match_id and winner_id are required')
    winner_id = _field(data, 'winner_id', 'winnerId')
    match = end_match(account_id, str(match_id), winner_id)
    return {'ok': True, 'match_id': match.id, 'winner_id': match.winner_id}


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('joinMatch', handle_join_match, namespace=NAMESPACE)
    socketio.on_event('makeMove', handle_make_move, namespace=NAMESPACE)
    socketio.on_event('endMatch', handle_end_match, namespace=NAMESPACE)
