"""Match domain services: lifecycle, moves, dice and realtime rooms.

HTTP routes and socket handlers both call into this package, keeping
transport concerns separated from the rules of a match.
"""

from .dice import roll_weighted_die
from .lifecycle import create_match, end_match, get_match, join_match, list_active_matches
from .locks import match_locks
from .moves import ensure_weighting, list_moves, submit_move
from .rooms import room_broadcaster
