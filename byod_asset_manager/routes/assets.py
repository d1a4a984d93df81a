# byod_asset_manager/routes/assets.py
from flask import request, jsonify
from flask_login import login_required, current_user
from byod_asset_manager.routes import assets_bp as bp, json_body, expected_revision
from byod_asset_manager.services.assets import AssetLifecycleController
from byod_asset_manager.services.settings import get_settings
from byod_asset_manager.store import EntityStore


def _controller():
    return AssetLifecycleController(EntityStore())


@bp.route('/')
@login_required
def list_assets():
    controller = _controller()
    assets = controller.list(
        current_user,
        category=request.args.get('category'),
        status=request.args.get('status'),
        query=request.args.get('q', ''),
    )
    settings = get_settings(controller.store)
    return jsonify([controller.describe(asset, settings) for asset in assets])


@bp.route('/mine')
@login_required
def my_assets():
    controller = _controller()
    return jsonify([asset.to_dict() for asset in controller.held_by(current_user.id)])


@bp.route('/summary')
@login_required
def summary():
    return jsonify(_controller().summary(current_user))


@bp.route('/', methods=['POST'])
@login_required
def register_asset():
    asset = _controller().register(current_user, json_body())
    return jsonify(asset.to_dict()), 201


@bp.route('/<int:id>')
@login_required
def view_asset(id):
    controller = _controller()
    asset = controller.get(current_user, id)
    rv = controller.describe(asset)
    rv['history'] = [h.to_dict() for h in sorted(asset.history, key=lambda h: h.id)]
    return jsonify(rv)


@bp.route('/<int:id>', methods=['PATCH'])
@login_required
def update_asset(id):
    data = json_body()
    revision = expected_revision(data)
    changes = {k: v for k, v in data.items() if k != 'revision'}
    asset = _controller().update_details(current_user, id, changes, expected_revision=revision)
    return jsonify(asset.to_dict())


@bp.route('/<int:id>/assign', methods=['POST'])
@login_required
def assign_asset(id):
    data = json_body()
    asset = _controller().assign(
        current_user, id, data.get('userId'),
        is_spare=data.get('isSpare', False),
        spare_return_date=data.get('spareReturnDate'),
        expected_revision=expected_revision(data),
    )
    return jsonify(asset.to_dict())


@bp.route('/<int:id>/return', methods=['POST'])
@login_required
def return_asset(id):
    data = json_body()
    asset = _controller().return_asset(current_user, id, data.get('destination'),
                                       expected_revision=expected_revision(data))
    return jsonify(asset.to_dict())


@bp.route('/<int:id>/status', methods=['POST'])
@login_required
def set_status(id):
    data = json_body()
    asset = _controller().set_status(current_user, id, data.get('status'),
                                     expected_revision=expected_revision(data))
    return jsonify(asset.to_dict())


@bp.route('/<int:id>/decommission', methods=['POST'])
@login_required
def decommission_asset(id):
    data = json_body()
    asset = _controller().decommission(current_user, id, data.get('removalData'),
                                       expected_revision=expected_revision(data))
    return jsonify(asset.to_dict())
