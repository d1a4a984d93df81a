# byod_asset_manager/routes/byod.py
from flask import request, jsonify
from flask_login import login_required, current_user
from byod_asset_manager.routes import byod_bp as bp, json_body, expected_revision
from byod_asset_manager.services.byod import ByodOrchestrator
from byod_asset_manager.store import EntityStore


def _orchestrator():
    return ByodOrchestrator(EntityStore())


@bp.route('/')
@login_required
def list_entries():
    entries = _orchestrator().list_entries(
        current_user,
        status=request.args.get('status'),
        user_id=request.args.get('userId', type=int),
    )
    return jsonify([e.to_dict() for e in entries])


@bp.route('/', methods=['POST'])
@login_required
def submit_request():
    entry = _orchestrator().submit_request(current_user, json_body())
    return jsonify(entry.to_dict()), 201


@bp.route('/<int:id>/approve', methods=['POST'])
@login_required
def approve(id):
    entry, reclaimed = _orchestrator().approve(current_user, id, expected_revision=expected_revision(json_body()))
    return jsonify({'entry': entry.to_dict(), 'reclaimedAssetIds': reclaimed})


@bp.route('/<int:id>/reject', methods=['POST'])
@login_required
def reject(id):
    entry = _orchestrator().reject(current_user, id, json_body().get('reason'))
    return jsonify(entry.to_dict())


@bp.route('/<int:id>/retrieve', methods=['POST'])
@login_required
def retrieve(id):
    entry = _orchestrator().retrieve(current_user, id, json_body().get('reason'))
    return jsonify(entry.to_dict())
