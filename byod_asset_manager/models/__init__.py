# byod_asset_manager/models/__init__.py
from byod_asset_manager import db

# Import models after db
from .asset import Asset, AssetStatus, InventoryCategory
from .asset_history import AssetHistory, HistoryType
from .asset_service import AssetService, ServiceStatus
from .audit_log import AuditLog
from .byod import ByodEntry, ByodStatus, DeviceType, EmployeeType
from .settings import AppSettings
from .user import User, UserRole, AdminRole, AssetUsage

__all__ = ['Asset', 'AssetStatus', 'InventoryCategory', 'AssetHistory', 'HistoryType',
    'AssetService', 'ServiceStatus', 'AuditLog', 'ByodEntry', 'ByodStatus', 'DeviceType',
    'EmployeeType', 'AppSettings', 'User', 'UserRole', 'AdminRole', 'AssetUsage']
