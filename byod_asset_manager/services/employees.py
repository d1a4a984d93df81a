import logging
from datetime import datetime, timedelta

from flask import current_app, has_app_context

from byod_asset_manager import bcrypt
from byod_asset_manager.errors import InvalidState, PolicyViolation, ValidationError
from byod_asset_manager.models import AdminRole, Asset, AssetUsage, InventoryCategory, User, UserRole
from byod_asset_manager.models.types import coerce_enum
from byod_asset_manager.permissions import Action, Module, PermissionMatrix, preset_for, require
from byod_asset_manager.services.assets import AssetLifecycleController
from byod_asset_manager.services.audit import AuditLogRecorder
from byod_asset_manager.services.byod import ByodOrchestrator
from byod_asset_manager.services.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_PRESENCE_WINDOW = 30
PROFILE_FIELDS = ('employeeCode', 'department', 'location', 'mobile')
PROFILE_COLUMNS = dict(zip(PROFILE_FIELDS, ('employee_code', 'department', 'location', 'mobile')))
AUTO_RETURN_NOTE = 'Auto-return: employee account deleted'


def _hash_password(password):
    if not password or len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    return bcrypt.generate_password_hash(password).decode('utf-8')


def _new_user(store, data, role):
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    if not name:
        raise ValidationError("Name is required")
    if '@' not in email:
        raise ValidationError("A valid email is required")
    if store.count(User, User.email == email):
        raise ValidationError(f"Email {email} is already registered")

    user = User(
        name=name,
        email=email,
        password_hash=_hash_password(data.get('password')),
        role=role,
        asset_usage=AssetUsage.COMPANY,
        permissions={},
        is_active=True,
        is_deleted=False,
    )
    for key, column in PROFILE_COLUMNS.items():
        if data.get(key):
            setattr(user, column, str(data[key]).strip())
    return user


def holds_non_spare_laptop(store, user_id):
    return store.count(
        Asset,
        Asset.assigned_to == user_id,
        Asset.inventory_category == InventoryCategory.ASSET,
        Asset.is_spare_assignment.is_(False),
    ) > 0


def list_employees(store, actor, include_deleted=False):
    require(actor, Module.EMPLOYEES, Action.READ)
    criteria = [User.role == UserRole.EMPLOYEE]
    if not include_deleted:
        criteria.append(User.is_deleted.is_(False))
    return store.list(User, *criteria, order_by=User.name)


def list_admins(store, actor):
    require(actor, Module.ADMIN, Action.READ)
    return store.list(User, User.role == UserRole.ADMIN, order_by=User.name)


def create_employee(store, actor, data):
    require(actor, Module.EMPLOYEES, Action.WRITE)
    data = data or {}
    with store.unit_of_work():
        user = _new_user(store, data, UserRole.EMPLOYEE)
        store.append(user)
        store.flush()
        AuditLogRecorder(store).record_for(actor, 'EMPLOYEE_CREATE', f'Created employee: {user.name}',
                                           target_id=user.id)
    logger.info(f"Employee {user.id} created")
    return user


def create_admin(store, actor, data):
    """Create an admin whose matrix is a copy of the chosen role's preset."""
    require(actor, Module.ADMIN, Action.WRITE)
    data = data or {}
    admin_role = coerce_enum(AdminRole, data.get('adminRole'), 'admin role')
    with store.unit_of_work():
        user = _new_user(store, data, UserRole.ADMIN)
        user.admin_role = admin_role
        user.permissions = preset_for(admin_role).to_dict()
        store.append(user)
        store.flush()
        AuditLogRecorder(store).record_for(actor, 'ADMIN_CREATE',
                                           f'Created {admin_role.value} admin: {user.name}', target_id=user.id)
    logger.info(f"Admin {user.id} created with role {admin_role.value}")
    return user


def set_admin_role(store, actor, user_id, admin_role):
    """Re-role an admin; the new preset replaces the stored matrix."""
    require(actor, Module.ADMIN, Action.UPDATE)
    admin_role = coerce_enum(AdminRole, admin_role, 'admin role')
    with store.unit_of_work():
        user = store.require(User, user_id)
        if not user.is_admin:
            raise InvalidState(f"{user.name} is not an admin")
        user.admin_role = admin_role
        user.permissions = preset_for(admin_role).to_dict()
        store.put(user)
        AuditLogRecorder(store).record_for(actor, 'PERMISSION_UPDATE',
                                           f'Changed role of {user.name} to {admin_role.value}', target_id=user.id)
    return user


def _apply_profile(store, user, changes):
    """Apply name/email/profile edits to ``user``; returns the changed keys."""
    unknown = set(changes) - {'name', 'email'} - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit: {', '.join(sorted(unknown))}")
    changed = []
    if 'name' in changes:
        name = (changes['name'] or '').strip()
        if not name:
            raise ValidationError("Name is required")
        if name != user.name:
            user.name = name
            changed.append('name')
    if 'email' in changes:
        email = (changes['email'] or '').strip().lower()
        if '@' not in email:
            raise ValidationError("A valid email is required")
        if email != user.email:
            if store.count(User, User.email == email, User.id != user.id):
                raise ValidationError(f"Email {email} is already registered")
            user.email = email
            changed.append('email')
    for key in PROFILE_FIELDS:
        if key not in changes:
            continue
        value = str(changes[key]).strip() if changes[key] is not None else None
        column = PROFILE_COLUMNS[key]
        if (value or None) != getattr(user, column):
            setattr(user, column, value or None)
            changed.append(key)
    return changed


def update_employee(store, actor, user_id, changes, expected_revision=None):
    """
    Edit an employee's profile. An ``assetUsage`` change is handed to
    set_asset_usage after the profile commits; the PERSONAL guard is checked
    up front so a refused switch leaves the profile untouched.
    """
    require(actor, Module.EMPLOYEES, Action.UPDATE)
    changes = dict(changes or {})
    usage = changes.pop('assetUsage', None)
    if usage is not None:
        usage = coerce_enum(AssetUsage, usage, 'asset usage')

    with store.unit_of_work():
        user = store.require(User, user_id)
        store.put(user, expected_revision)
        if user.role != UserRole.EMPLOYEE:
            raise InvalidState(f"{user.name} is not an employee")
        if user.is_deleted:
            raise InvalidState(f"{user.name} is deleted")
        if (usage == AssetUsage.PERSONAL and user.asset_usage != usage
                and holds_non_spare_laptop(store, user.id)):
            raise PolicyViolation(
                f"{user.name} still holds a non-spare company laptop; return it before switching to personal mode",
                payload={'userId': user.id},
            )
        changed = _apply_profile(store, user, changes)
        if changed:
            AuditLogRecorder(store).record_for(actor, 'EMPLOYEE_UPDATE',
                                               f"Updated employee {user.name}: {', '.join(changed)}",
                                               target_id=user.id)

    if usage is not None and usage != user.asset_usage:
        user = set_asset_usage(store, actor, user.id, usage)
    logger.info(f"Employee {user.id} updated")
    return user


def update_admin(store, actor, user_id, changes, expected_revision=None):
    """Edit an admin's profile. Admins may always edit their own record."""
    if actor is None or actor.id != user_id:
        require(actor, Module.ADMIN, Action.UPDATE)
    with store.unit_of_work():
        user = store.require(User, user_id)
        store.put(user, expected_revision)
        if not user.is_admin:
            raise InvalidState(f"{user.name} is not an admin")
        changed = _apply_profile(store, user, dict(changes or {}))
        if changed:
            AuditLogRecorder(store).record_for(actor, 'ADMIN_UPDATE',
                                               f'Updated admin: {user.name} ({user.email})', target_id=user.id)
    return user


def reset_password(store, actor, user_id, new_password):
    """Set a new password for someone else's account."""
    with store.unit_of_work():
        user = store.require(User, user_id)
        require(actor, Module.ADMIN if user.is_admin else Module.EMPLOYEES, Action.UPDATE)
        if user.is_deleted:
            raise InvalidState(f"{user.name} is deleted")
        user.password_hash = _hash_password(new_password)
        store.put(user)
        AuditLogRecorder(store).record_for(actor, 'PASSWORD_RESET', f'Reset password for {user.name}',
                                           target_id=user.id)
    logger.info(f"Password reset for user {user.id}")
    return user


def update_permissions(store, actor, user_id, changes, expected_revision=None):
    """
    ``changes`` maps module -> {action: bool}. Revocations are applied before
    grants, so granting write or update always leaves read granted.
    """
    require(actor, Module.ADMIN, Action.UPDATE)
    if not isinstance(changes, dict) or not changes:
        raise ValidationError("Permission changes are required")

    with store.unit_of_work():
        user = store.require(User, user_id)
        store.put(user, expected_revision)
        if not user.is_admin:
            raise InvalidState(f"{user.name} is not an admin")
        matrix = PermissionMatrix.from_dict(user.permissions)
        for module, flags in changes.items():
            if not isinstance(flags, dict):
                raise ValidationError(f"Permission flags for {module} must be an object")
            for action, granted in flags.items():
                if not granted:
                    matrix = matrix.revoke(module, action)
            for action, granted in flags.items():
                if granted:
                    matrix = matrix.grant(module, action)
        user.permissions = matrix.to_dict()
        AuditLogRecorder(store).record_for(actor, 'PERMISSION_UPDATE',
                                           f"Updated permissions of {user.name}: {', '.join(sorted(changes))}",
                                           target_id=user.id)
    logger.info(f"Permissions of user {user.id} updated")
    return user


def set_asset_usage(store, actor, user_id, mode, expected_revision=None):
    require(actor, Module.EMPLOYEES, Action.UPDATE)
    mode = coerce_enum(AssetUsage, mode, 'asset usage')
    if mode == AssetUsage.COMPANY:
        return ByodOrchestrator(store).switch_to_company(actor, user_id, expected_revision)

    with store.unit_of_work():
        user = store.require(User, user_id)
        store.put(user, expected_revision)
        if user.asset_usage == mode:
            return user
        if holds_non_spare_laptop(store, user.id):
            logger.warning(f"Blocked switch of user {user.id} to personal mode: holds company laptop")
            raise PolicyViolation(
                f"{user.name} still holds a non-spare company laptop; return it before switching to personal mode",
                payload={'userId': user.id},
            )
        previous = user.asset_usage
        user.asset_usage = mode
        AuditLogRecorder(store).record_for(actor, 'ASSET_USAGE_TOGGLE',
                                           f'Switched asset usage for {user.name}: {previous.value} -> {mode.value}',
                                           target_id=user.id)
    logger.info(f"User {user.id} switched to {mode.value}")
    return user


def set_active(store, actor, user_id, active):
    require(actor, Module.EMPLOYEES, Action.UPDATE)
    active = bool(active)
    with store.unit_of_work():
        user = store.require(User, user_id)
        if user.is_active == active:
            return user
        if active and user.is_deleted:
            raise InvalidState(f"{user.name} is deleted and cannot be reactivated")
        if not active and store.count(Asset, Asset.assigned_to == user.id):
            raise InvalidState(f"{user.name} still holds assets; return them first")
        user.is_active = active
        store.put(user)
        AuditLogRecorder(store).record_for(actor, 'EMPLOYEE_STATUS_TOGGLE',
                                           f"{'Activated' if active else 'Deactivated'} {user.name}",
                                           target_id=user.id)
    return user


def soft_delete_employee(store, actor, user_id, reason):
    """
    Mark the user deleted and return everything they hold to the configured
    default status, in one unit of work.
    """
    require(actor, Module.EMPLOYEES, Action.UPDATE)
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError("A reason is required to delete an employee")
    if actor is not None and actor.id == user_id:
        raise InvalidState("You cannot delete your own account")

    with store.unit_of_work():
        user = store.require(User, user_id)
        if user.is_deleted:
            raise InvalidState(f"{user.name} is already deleted")
        destination = get_settings(store).default_asset_status
        lifecycle = AssetLifecycleController(store)
        returned = []
        for asset in lifecycle.held_by(user.id):
            lifecycle.unlink(asset, destination, note=AUTO_RETURN_NOTE)
            returned.append(asset.asset_code)

        user.is_deleted = True
        user.is_active = False
        user.delete_reason = reason
        user.deleted_at = datetime.utcnow()
        store.put(user)
        AuditLogRecorder(store).record_for(
            actor, 'EMPLOYEE_SOFT_DELETE',
            f"Deleted {user.name}. Reason: {reason}. Returned assets: {', '.join(returned) or 'none'}",
            target_id=user.id,
        )
    logger.info(f"User {user.id} soft-deleted; {len(returned)} asset(s) returned")
    return user, returned


def change_password(store, user, old_password, new_password):
    with store.unit_of_work():
        user = store.require(User, user.id)
        if not user.password_hash or not bcrypt.check_password_hash(user.password_hash, old_password or ''):
            raise ValidationError("Incorrect old password")
        user.password_hash = _hash_password(new_password)
        store.put(user)
    return user


def authenticate(store, email, password):
    """Return the active account matching the credentials, else None."""
    email = (email or '').strip().lower()
    users = store.list(User, User.email == email)
    user = users[0] if users else None
    if user is None or not user.is_active_account or not user.password_hash:
        return None
    if not bcrypt.check_password_hash(user.password_hash, password or ''):
        logger.warning(f"Failed login for {email}")
        return None
    return user


def _presence_window():
    if has_app_context():
        return current_app.config.get('PRESENCE_WINDOW_SECONDS', DEFAULT_PRESENCE_WINDOW)
    return DEFAULT_PRESENCE_WINDOW


def record_heartbeat(store, user, now=None):
    with store.unit_of_work():
        user = store.require(User, user.id)
        user.last_active = now or datetime.utcnow()
        store.put(user)
    return user


def is_online(user, now=None):
    if user is None or user.last_active is None:
        return False
    now = now or datetime.utcnow()
    return now - user.last_active <= timedelta(seconds=_presence_window())


def seed_super_admin(store, email, password, name='Super Admin'):
    """Create the first SUPER_ADMIN when no admin exists yet."""
    if store.count(User, User.role == UserRole.ADMIN):
        return None
    with store.unit_of_work():
        user = _new_user(store, {'name': name, 'email': email, 'password': password}, UserRole.ADMIN)
        user.admin_role = AdminRole.SUPER_ADMIN
        user.permissions = preset_for(AdminRole.SUPER_ADMIN).to_dict()
        store.append(user)
        store.flush()
        AuditLogRecorder(store).record_for(None, 'ADMIN_CREATE', f'Seeded super admin: {user.email}',
                                           target_id=user.id)
    logger.info(f"Seeded super admin {user.email}")
    return user
