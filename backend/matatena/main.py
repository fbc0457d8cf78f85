from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from matatena import db
from matatena.models import Account

main = Blueprint('main', __name__)


def _credentials():
    data = request.get_json(silent=True) or {}
    return (data.get('username') or '').strip(), data.get('password') or ''


@main.route('/register', methods=['POST'])
def register():
    username, password = _credentials()
    if not username or not password:
        return jsonify({"success": False, "message": "Missing username or password"}), 400
    if Account.query.filter_by(username=username).first():
        return jsonify({"success": False, "message": "Username already exists"}), 400

    account = Account(username=username)
    account.set_password(password)
    db.session.add(account)
    db.session.commit()
    login_user(account)
    return jsonify({"success": True, "account": account.to_dict()}), 201


@main.route('/login', methods=['POST'])
def login():
    username, password = _credentials()
    account = Account.query.filter_by(username=username).first()
    if account and account.check_password(password):
        login_user(account, remember=True)
        return jsonify({"success": True, "account": account.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401


@main.route('/check_login', methods=['GET'])
@login_required
def check_login():
    return jsonify({"success": True, "account": current_user.to_dict()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
