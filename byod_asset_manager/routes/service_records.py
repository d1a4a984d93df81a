# byod_asset_manager/routes/service_records.py
from flask import request, jsonify
from flask_login import login_required, current_user
from byod_asset_manager.routes import services_bp as bp, json_body
from byod_asset_manager.services import service_records
from byod_asset_manager.store import EntityStore


@bp.route('/')
@login_required
def list_services():
    asset_id = request.args.get('assetId', type=int)
    records = service_records.list_service_records(EntityStore(), current_user, asset_id=asset_id)
    return jsonify([r.to_dict() for r in records])


@bp.route('/', methods=['POST'])
@login_required
def create_service():
    record = service_records.create_service_record(EntityStore(), current_user, json_body())
    return jsonify(record.to_dict()), 201


@bp.route('/<int:id>', methods=['PATCH'])
@login_required
def update_service(id):
    record = service_records.update_service_record(EntityStore(), current_user, id, json_body())
    return jsonify(record.to_dict())


@bp.route('/<int:id>', methods=['DELETE'])
@login_required
def delete_service(id):
    service_records.delete_service_record(EntityStore(), current_user, id)
    return jsonify({'deleted': id})
