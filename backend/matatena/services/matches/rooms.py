import threading
from typing import Dict, Optional, Set, Tuple

from flask import current_app

from matatena import socketio
from matatena.models import Match, Move


def room_name(match_id: str) -> str:
    return f"match:{match_id}"


class RoomBroadcaster:
    """Realtime rooms keyed by match id, and the events sent into them.

    The registry only reflects which live sessions are listening to which
    match; who belongs to a match is always read from the ``Match`` row.
    A session listens to at most one match at a time.
    """

    def __init__(self, socketio, namespace: str = '/ws') -> None:
        self.socketio = socketio
        self.namespace = namespace
        self._lock = threading.Lock()
        self._sessions: Dict[str, Tuple[str, int]] = {}  # sid -> (match_id, account_id)
        self._rooms: Dict[str, Set[str]] = {}  # match_id -> sids

    # ---- registry ----

    def subscribe(self, sid: str, match_id: str, account_id: int) -> None:
        previous = self.unsubscribe(sid)
        with self._lock:
            self._sessions[sid] = (match_id, account_id)
            self._rooms.setdefault(match_id, set()).add(sid)
        if previous and previous != match_id:
            self.socketio.server.leave_room(sid, room_name(previous), namespace=self.namespace)
        self.socketio.server.enter_room(sid, room_name(match_id), namespace=self.namespace)

    def unsubscribe(self, sid: str) -> Optional[str]:
        """Forget ``sid``; returns the match it was listening to, if any."""
        with self._lock:
            entry = self._sessions.pop(sid, None)
            if entry is None:
                return None
            match_id = entry[0]
            members = self._rooms.get(match_id)
            if members is not None:
                members.discard(sid)
                if not members:
                    self._rooms.pop(match_id, None)
        return match_id

    def room_of(self, sid: str) -> Optional[str]:
        with self._lock:
            entry = self._sessions.get(sid)
        return entry[0] if entry else None

    def members(self, match_id: str) -> Set[str]:
        with self._lock:
            return set(self._rooms.get(match_id, ()))

    def rooms(self) -> Dict[str, Set[str]]:
        with self._lock:
            return {match_id: set(sids) for match_id, sids in self._rooms.items()}

    # ---- fan-out ----

    def _emit(self, event: str, payload: dict, match_id: str) -> None:
        self.socketio.emit(event, payload, to=room_name(match_id), namespace=self.namespace)
        current_app.logger.debug(f"[ws-emit] event={event} match={match_id}")

    def participant_joined(self, match: Match) -> None:
        self._emit('participantJoined', {
            'match_id': match.id,
            'account_id': match.guest_id,
            'username': match.guest.username if match.guest else None,
        }, match.id)

    def move_made(self, move: Move, username: str) -> None:
        self._emit('moveMade', {
            'match_id': move.match_id,
            'move_id': move.id,
            'seq': move.seq,
            'account_id': move.account_id,
            'username': username,
            'dice': move.dice,
            'column': move.column,
            'created_at': move.created_at.isoformat() if move.created_at else None,
        }, move.match_id)

    def match_ended(self, match: Match) -> None:
        self._emit('gameEnded', {
            'match_id': match.id,
            'winner_id': match.winner_id,
            'winner_username': match.winner.username if match.winner else None,
            'ended_at': match.ended_at.isoformat() if match.ended_at else None,
        }, match.id)

    def snapshot(self, match: Match, account_id: int) -> dict:
        """State a freshly subscribed session needs to catch up from."""
        moves = match.moves.all()
        opponent = match.opponent_of(account_id)
        next_turn = None
        if moves and not match.is_ended:
            last_by = moves[-1].account_id
            next_turn = match.guest_id if last_by == match.host_id else match.host_id
        return {
            'match_id': match.id,
            'code': match.code,
            'status': match.status,
            'ended': match.is_ended,
            'winner_id': match.winner_id,
            'opponent': opponent.to_dict() if opponent else None,
            'moves': [m.to_dict() for m in moves],
            'next_turn': next_turn,
        }


room_broadcaster = RoomBroadcaster(socketio)
