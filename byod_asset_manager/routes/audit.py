from flask import request, jsonify
from flask_login import login_required, current_user
from byod_asset_manager.permissions import Action, Module, require
from byod_asset_manager.routes import audit_bp
from byod_asset_manager.services.audit import AuditLogRecorder
from byod_asset_manager.store import EntityStore


@audit_bp.route('/')
@login_required
def list_audit_logs():
    require(current_user, Module.ADMIN, Action.READ)
    entries = AuditLogRecorder(EntityStore()).recent(
        limit=request.args.get('limit', type=int),
        action=request.args.get('action'),
    )
    return jsonify([e.to_dict() for e in entries])
