from types import SimpleNamespace

import pytest

from byod_asset_manager.errors import PermissionDenied, ValidationError
from byod_asset_manager.models import AdminRole, InventoryCategory
from byod_asset_manager.permissions import (FULL_ACCESS, NO_ACCESS, ROLE_PRESETS, Action, Module, ModuleAccess,
                                            PermissionMatrix, can_perform, module_for_category, preset_for,
                                            require)


def _user(permissions, is_active=True, is_deleted=False):
    return SimpleNamespace(permissions=permissions, is_active=is_active, is_deleted=is_deleted)


def test_missing_modules_have_no_access():
    matrix = PermissionMatrix.from_dict({'assets': {'read': True}})
    assert matrix.access(Module.ASSETS) == ModuleAccess(read=True)
    assert matrix.access('byod') == NO_ACCESS
    assert set(matrix.to_dict()) == {m.value for m in Module}


def test_write_without_read_is_rejected():
    with pytest.raises(ValidationError):
        PermissionMatrix.from_dict({'assets': {'write': True}})
    with pytest.raises(ValidationError):
        PermissionMatrix.from_dict({'services': {'read': False, 'update': True}})


def test_unknown_module_or_action_is_rejected():
    with pytest.raises(ValidationError):
        PermissionMatrix.from_dict({'payroll': {'read': True}})
    with pytest.raises(ValidationError):
        PermissionMatrix().grant('assets', 'delete')


def test_grant_write_implies_read():
    matrix = PermissionMatrix().grant(Module.ASSETS, Action.WRITE)
    assert matrix.can('assets', 'read')
    assert matrix.can('assets', 'write')
    assert not matrix.can('assets', 'update')


def test_revoke_read_revokes_everything():
    matrix = PermissionMatrix({Module.BYOD: FULL_ACCESS}).revoke('byod', 'read')
    assert matrix.access(Module.BYOD) == NO_ACCESS


def test_revoke_update_keeps_read():
    matrix = PermissionMatrix({Module.BYOD: FULL_ACCESS}).revoke('byod', 'update')
    assert matrix.access(Module.BYOD) == ModuleAccess(read=True, write=True)


def test_grant_returns_new_matrix():
    original = PermissionMatrix()
    original.grant('assets', 'read')
    assert original.access('assets') == NO_ACCESS


def test_preset_is_a_copy():
    matrix = preset_for(AdminRole.ASSETS_MANAGER)
    assert matrix == ROLE_PRESETS[AdminRole.ASSETS_MANAGER]
    assert matrix is not ROLE_PRESETS[AdminRole.ASSETS_MANAGER]
    changed = matrix.revoke('assets', 'read')
    assert ROLE_PRESETS[AdminRole.ASSETS_MANAGER].can('assets', 'read')
    assert not changed.can('assets', 'read')


def test_presets():
    assert preset_for(AdminRole.SUPER_ADMIN).can('settings', 'update')
    operator = preset_for(AdminRole.OPERATOR)
    assert operator.can('assets', 'read')
    assert not operator.can('assets', 'update')
    assistant = preset_for(AdminRole.COMPLAINT_ASSISTANT)
    assert assistant.can('complaints', 'write')
    assert not assistant.can('byod', 'read')


def test_can_perform_uses_stored_matrix_only():
    user = _user({'assets': {'read': True, 'update': True}})
    assert can_perform(user, 'assets', 'update')
    assert not can_perform(user, Module.ASSETS, Action.WRITE)
    assert not can_perform(user, Module.BYOD, Action.READ)


def test_can_perform_denies_missing_inactive_and_deleted_users():
    permissions = PermissionMatrix.full().to_dict()
    assert not can_perform(None, 'assets', 'read')
    assert not can_perform(_user(permissions, is_active=False), 'assets', 'read')
    assert not can_perform(_user(permissions, is_deleted=True), 'assets', 'read')


def test_can_perform_denies_corrupt_matrix():
    assert not can_perform(_user({'assets': {'update': True}}), 'assets', 'update')


def test_require_raises_with_payload():
    with pytest.raises(PermissionDenied) as excinfo:
        require(_user({}), Module.SETTINGS, Action.UPDATE)
    assert excinfo.value.payload == {'module': 'settings', 'action': 'update'}
    assert excinfo.value.status_code == 403


def test_category_modules():
    assert module_for_category(InventoryCategory.ASSET) is Module.ASSETS
    assert module_for_category(InventoryCategory.MOUSE) is Module.MOUSE
    assert module_for_category('ACCESSORY') is Module.ACCESSORIES
