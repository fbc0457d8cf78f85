from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from matatena.errors import InvalidInput
from matatena.services.matches import (
    create_match,
    end_match,
    get_match,
    join_match,
    list_active_matches,
    list_moves,
    submit_move,
)


matches = Blueprint('matches', __name__)


@matches.route('', methods=['POST'])
@login_required
def create():
    """Creates a new match hosted by the current account."""
    match = create_match(current_user.id)
    return jsonify({
        'message': 'Match created',
        'match_id': match.id,
        'code': match.code,
        'host_id': match.host_id,
    }), 201


@matches.route('/join', methods=['POST'])
@login_required
def join_by_code():
    """Joins a match as guest, addressed by code (or by id in the body)."""
    data = request.get_json(silent=True) or {}
    code = data.get('code')
    match_id = data.get('match_id')
    if not (code or match_id):
        raise InvalidInput('A match code is required')
    match = join_match(current_user.id, match_id=match_id, code=code)
    return jsonify({'message': 'Joined match', 'match': match.to_dict()}), 200


@matches.route('/active', methods=['GET'])
@login_required
def active():
    return jsonify([m.to_dict() for m in list_active_matches(current_user.id)])


@matches.route('/code/<string:code>', methods=['GET'])
@login_required
def get_by_code(code):
    return jsonify(get_match(code=code).to_dict())


@matches.route('/<string:match_id>', methods=['GET'])
@login_required
def get_by_id(match_id):
    return jsonify(get_match(match_id=match_id).to_dict())


@matches.route('/<string:match_id>/join', methods=['POST'])
@login_required
def join_by_id(match_id):
    match = join_match(current_user.id, match_id=match_id)
    return jsonify({'message': 'Joined match', 'match': match.to_dict()}), 200


@matches.route('/<string:match_id>/moves', methods=['POST'])
@login_required
def make_move(match_id):
    """Records a move; the server rolls the die, the client only picks a column."""
    data = request.get_json(silent=True) or {}
    move, username = submit_move(match_id, current_user.id, data.get('column'))
    payload = move.to_dict()
    payload['username'] = username
    return jsonify(payload), 201


@matches.route('/<string:match_id>/moves', methods=['GET'])
@login_required
def get_moves(match_id):
    return jsonify({'moves': [m.to_dict() for m in list_moves(match_id)]})


@matches.route('/<string:match_id>/end', methods=['PUT'])
@login_required
def end(match_id):
    data = request.get_json(silent=True) or {}
    match = end_match(current_user.id, match_id, data.get('winner_id'))
    return jsonify({
        'message': 'Match ended',
        'match_id': match.id,
        'winner_id': match.winner_id,
        'winner_username': match.winner.username if match.winner else None,
        'ended_at': match.ended_at.isoformat() if match.ended_at else None,
    })
