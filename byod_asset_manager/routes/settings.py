from flask import jsonify
from flask_login import login_required, current_user
from byod_asset_manager.permissions import Action, Module, require
from byod_asset_manager.routes import settings_bp, json_body
from byod_asset_manager.services.settings import get_settings, update_settings
from byod_asset_manager.store import EntityStore


@settings_bp.route('/')
@login_required
def view_settings():
    require(current_user, Module.SETTINGS, Action.READ)
    return jsonify(get_settings(EntityStore()).to_dict())


@settings_bp.route('/', methods=['PATCH'])
@login_required
def edit_settings():
    settings = update_settings(EntityStore(), current_user, json_body())
    return jsonify(settings.to_dict())
