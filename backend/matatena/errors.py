"""Typed outcomes for match operations.

Services raise these after a failed precondition and before any write, so a
failure never leaves a partially updated match behind. The HTTP layer turns
them into JSON responses; the Socket.IO layer turns them into an ``error``
event for the originating session.
"""


class MatchError(Exception):
    kind = 'error'
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message, 'kind': self.kind}


class NotFound(MatchError):
    kind = 'not_found'
    status_code = 404


class Conflict(MatchError):
    kind = 'conflict'
    status_code = 409


class InvalidInput(MatchError):
    kind = 'invalid_input'
    status_code = 400


class Forbidden(MatchError):
    kind = 'forbidden'
    status_code = 403


class OutOfTurn(MatchError):
    kind = 'out_of_turn'
    status_code = 409


class Unauthenticated(MatchError):
    kind = 'unauthenticated'
    status_code = 401


class PersistenceFailure(MatchError):
    """Database trouble (connectivity, unexpected constraint violations)."""

    kind = 'internal'
    status_code = 500
