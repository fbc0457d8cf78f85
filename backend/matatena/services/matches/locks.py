import threading
from contextlib import contextmanager
from typing import Dict, List


class MatchLockRegistry:
    """One mutex per match id, created on demand and dropped when idle.

    Guards the check-then-write step of joins, moves and endings so two
    requests for the same match cannot both pass validation. Unrelated
    matches never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, List] = {}  # match_id -> [lock, holders]

    @contextmanager
    def hold(self, match_id: str):
        with self._guard:
            entry = self._entries.setdefault(match_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] <= 0:
                    self._entries.pop(match_id, None)

    def active(self) -> int:
        with self._guard:
            return len(self._entries)


match_locks = MatchLockRegistry()
