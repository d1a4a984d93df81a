from flask import jsonify
from flask_login import login_user, current_user, logout_user, login_required
from byod_asset_manager.errors import ValidationError
from byod_asset_manager.routes import users_bp, json_body
from byod_asset_manager.services import employees
from byod_asset_manager.store import EntityStore


@users_bp.route("/login", methods=['POST'])
def login():
    data = json_body()
    user = employees.authenticate(EntityStore(), data.get('email'), data.get('password'))
    if user is None:
        return jsonify({'error': 'Login Unsuccessful. Please check email and password', 'status': 401}), 401
    login_user(user, remember=bool(data.get('remember')))
    employees.record_heartbeat(EntityStore(), user)
    return jsonify(user.to_dict())


@users_bp.route("/logout", methods=['POST'])
def logout():
    logout_user()
    return jsonify({'loggedOut': True})


@users_bp.route("/me")
@login_required
def profile():
    return jsonify(current_user.to_dict())


@users_bp.route("/heartbeat", methods=['POST'])
@login_required
def heartbeat():
    user = employees.record_heartbeat(EntityStore(), current_user)
    return jsonify({'lastActive': user.last_active.isoformat()})


@users_bp.route("/password", methods=['POST'])
@login_required
def change_password():
    data = json_body()
    if not data.get('newPassword'):
        raise ValidationError('New password is required')
    employees.change_password(EntityStore(), current_user, data.get('oldPassword'), data.get('newPassword'))
    return jsonify({'updated': True})
