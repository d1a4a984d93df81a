# byod_asset_manager/routes/employees.py
from flask import request, jsonify
from flask_login import login_required, current_user
from byod_asset_manager.errors import PermissionDenied
from byod_asset_manager.models import User
from byod_asset_manager.permissions import Action, Module, can_perform
from byod_asset_manager.routes import employees_bp as bp, json_body, expected_revision
from byod_asset_manager.services import employees
from byod_asset_manager.services.assets import AssetLifecycleController
from byod_asset_manager.store import EntityStore


def _describe(user):
    rv = user.to_dict()
    rv['online'] = employees.is_online(user)
    return rv


@bp.route('/')
@login_required
def list_employees():
    include_deleted = request.args.get('includeDeleted') == 'true'
    users = employees.list_employees(EntityStore(), current_user, include_deleted=include_deleted)
    return jsonify([_describe(u) for u in users])


@bp.route('/', methods=['POST'])
@login_required
def add_employee():
    user = employees.create_employee(EntityStore(), current_user, json_body())
    return jsonify(user.to_dict()), 201


@bp.route('/admins')
@login_required
def list_admins():
    return jsonify([_describe(u) for u in employees.list_admins(EntityStore(), current_user)])


@bp.route('/admins', methods=['POST'])
@login_required
def add_admin():
    user = employees.create_admin(EntityStore(), current_user, json_body())
    return jsonify(user.to_dict()), 201


@bp.route('/admins/<int:id>', methods=['PATCH'])
@login_required
def edit_admin(id):
    data = json_body()
    revision = expected_revision(data)
    changes = {k: v for k, v in data.items() if k != 'revision'}
    user = employees.update_admin(EntityStore(), current_user, id, changes, expected_revision=revision)
    return jsonify(user.to_dict())


@bp.route('/<int:id>')
@login_required
def view_employee(id):
    if current_user.id != id and not can_perform(current_user, Module.EMPLOYEES, Action.READ):
        raise PermissionDenied('You do not have permission to view this employee.')
    store = EntityStore()
    user = store.require(User, id)
    rv = _describe(user)
    rv['assets'] = [a.to_dict() for a in AssetLifecycleController(store).held_by(user.id)]
    return jsonify(rv)


@bp.route('/<int:id>/usage', methods=['POST'])
@login_required
def set_usage(id):
    data = json_body()
    user = employees.set_asset_usage(EntityStore(), current_user, id, data.get('assetUsage'),
                                     expected_revision=expected_revision(data))
    return jsonify(user.to_dict())


@bp.route('/<int:id>/active', methods=['POST'])
@login_required
def set_active(id):
    user = employees.set_active(EntityStore(), current_user, id, json_body().get('isActive'))
    return jsonify(user.to_dict())


@bp.route('/<int:id>/delete', methods=['POST'])
@login_required
def delete_employee(id):
    user, returned = employees.soft_delete_employee(EntityStore(), current_user, id, json_body().get('reason'))
    return jsonify({'user': user.to_dict(), 'returnedAssets': returned})


@bp.route('/<int:id>/permissions', methods=['POST'])
@login_required
def update_permissions(id):
    data = json_body()
    user = employees.update_permissions(EntityStore(), current_user, id, data.get('permissions'),
                                        expected_revision=expected_revision(data))
    return jsonify(user.to_dict())


@bp.route('/<int:id>/role', methods=['POST'])
@login_required
def set_role(id):
    user = employees.set_admin_role(EntityStore(), current_user, id, json_body().get('adminRole'))
    return jsonify(user.to_dict())


@bp.route('/<int:id>', methods=['PATCH'])
@login_required
def edit_employee(id):
    data = json_body()
    revision = expected_revision(data)
    changes = {k: v for k, v in data.items() if k != 'revision'}
    user = employees.update_employee(EntityStore(), current_user, id, changes, expected_revision=revision)
    return jsonify(user.to_dict())


@bp.route('/<int:id>/password', methods=['POST'])
@login_required
def reset_password(id):
    user = employees.reset_password(EntityStore(), current_user, id, json_body().get('password'))
    return jsonify(user.to_dict())
