"""
Capability matrix for admin and employee accounts.

Every account stores a matrix of module -> (read, write, update). Role presets
only seed that matrix when an admin is created or re-roled; evaluation always
reads the stored matrix and nothing else.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Mapping, Optional

from byod_asset_manager.errors import PermissionDenied, ValidationError
from byod_asset_manager.models.asset import InventoryCategory
from byod_asset_manager.models.user import AdminRole


class Module(str, Enum):
    DASHBOARD = "dashboard"
    EMPLOYEES = "employees"
    ASSETS = "assets"
    MOUSE = "mouse"
    ACCESSORIES = "accessories"
    SERVICES = "services"
    COMPLAINTS = "complaints"
    CALENDAR = "calendar"
    TOOLS_MANAGER = "tools_manager"
    ADMIN = "admin"
    RAR = "rar"
    SETTINGS = "settings"
    ALERTS = "alerts"
    REMINDERS = "reminders"
    BYOD = "byod"
    CHAT = "chat"

    @classmethod
    def from_string(cls, value) -> 'Module':
        if isinstance(value, cls):
            return value
        for module in cls:
            if module.value == str(value).strip().lower():
                return module
        raise ValidationError(f"Unknown module: {value}")


class Action(str, Enum):
    READ = "read"
    WRITE = "write"
    UPDATE = "update"

    @classmethod
    def from_string(cls, value) -> 'Action':
        if isinstance(value, cls):
            return value
        for action in cls:
            if action.value == str(value).strip().lower():
                return action
        raise ValidationError(f"Unknown action: {value}")


@dataclass(frozen=True)
class ModuleAccess:
    read: bool = False
    write: bool = False
    update: bool = False

    def allows(self, action: Action) -> bool:
        return bool(getattr(self, action.value))

    def is_consistent(self) -> bool:
        return self.read or not (self.write or self.update)

    def to_dict(self) -> Dict[str, bool]:
        return {'read': self.read, 'write': self.write, 'update': self.update}


NO_ACCESS = ModuleAccess()
FULL_ACCESS = ModuleAccess(read=True, write=True, update=True)
READ_ONLY = ModuleAccess(read=True)

CATEGORY_MODULES = {
    InventoryCategory.ASSET: Module.ASSETS,
    InventoryCategory.MOUSE: Module.MOUSE,
    InventoryCategory.ACCESSORY: Module.ACCESSORIES,
}


class PermissionMatrix:
    """Fixed-shape mapping of every Module to a ModuleAccess."""

    def __init__(self, entries: Optional[Mapping[Module, ModuleAccess]] = None):
        self._entries = {module: NO_ACCESS for module in Module}
        for module, access in (entries or {}).items():
            self._entries[Module.from_string(module)] = access

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> 'PermissionMatrix':
        """Parse stored or submitted JSON; write/update without read is rejected."""
        entries = {}
        for name, flags in (data or {}).items():
            module = Module.from_string(name)
            flags = flags or {}
            access = ModuleAccess(
                read=bool(flags.get('read', False)),
                write=bool(flags.get('write', False)),
                update=bool(flags.get('update', False)),
            )
            if not access.is_consistent():
                raise ValidationError(f"Module '{module.value}' grants write/update without read")
            entries[module] = access
        return cls(entries)

    @classmethod
    def full(cls) -> 'PermissionMatrix':
        return cls({module: FULL_ACCESS for module in Module})

    def access(self, module) -> ModuleAccess:
        return self._entries[Module.from_string(module)]

    def can(self, module, action) -> bool:
        return self.access(module).allows(Action.from_string(action))

    def grant(self, module, action) -> 'PermissionMatrix':
        module, action = Module.from_string(module), Action.from_string(action)
        current = self._entries[module]
        if action is Action.READ:
            updated = replace(current, read=True)
        else:
            # write/update imply read
            updated = replace(current, read=True, **{action.value: True})
        return self._with(module, updated)

    def revoke(self, module, action) -> 'PermissionMatrix':
        module, action = Module.from_string(module), Action.from_string(action)
        current = self._entries[module]
        if action is Action.READ:
            updated = NO_ACCESS
        else:
            updated = replace(current, **{action.value: False})
        return self._with(module, updated)

    def _with(self, module: Module, access: ModuleAccess) -> 'PermissionMatrix':
        entries = dict(self._entries)
        entries[module] = access
        return PermissionMatrix(entries)

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return {module.value: access.to_dict() for module, access in self._entries.items()}

    def __eq__(self, other):
        return isinstance(other, PermissionMatrix) and self._entries == other._entries

    def __repr__(self):
        granted = [m.value for m, a in self._entries.items() if a.read]
        return f"PermissionMatrix({granted})"


def _preset(**modules) -> PermissionMatrix:
    base = {Module.DASHBOARD: READ_ONLY}
    base.update({Module.from_string(name): access for name, access in modules.items()})
    return PermissionMatrix(base)


ROLE_PRESETS = {
    AdminRole.SUPER_ADMIN: PermissionMatrix.full(),
    AdminRole.OPERATOR: PermissionMatrix({module: READ_ONLY for module in Module}),
    AdminRole.ASSETS_MANAGER: _preset(
        assets=FULL_ACCESS, mouse=FULL_ACCESS, accessories=FULL_ACCESS,
        services=FULL_ACCESS, rar=READ_ONLY,
    ),
    AdminRole.COMPLAINT_ASSISTANT: _preset(complaints=FULL_ACCESS),
}


def preset_for(admin_role: AdminRole) -> PermissionMatrix:
    """Return a copy of the preset for a role; callers store it on the user."""
    return PermissionMatrix.from_dict(ROLE_PRESETS[admin_role].to_dict())


def can_perform(user, module, action) -> bool:
    """Evaluate strictly against the user's stored matrix."""
    if user is None or not getattr(user, 'is_active', False) or getattr(user, 'is_deleted', False):
        return False
    try:
        matrix = PermissionMatrix.from_dict(user.permissions)
    except ValidationError:
        return False
    return matrix.can(module, action)


def require(user, module, action):
    """Raise PermissionDenied unless the user holds the capability."""
    if not can_perform(user, module, action):
        module, action = Module.from_string(module), Action.from_string(action)
        raise PermissionDenied(
            f"Missing '{module.value}.{action.value}' permission",
            payload={'module': module.value, 'action': action.value},
        )


def module_for_category(category) -> Module:
    return CATEGORY_MODULES[InventoryCategory(category)]
