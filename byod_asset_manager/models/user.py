# byod_asset_manager/models/user.py
from datetime import datetime
from flask_login import UserMixin
from byod_asset_manager import db
from .types import StrEnum, enum_column

class UserRole(StrEnum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"

class AdminRole(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    OPERATOR = "OPERATOR"
    ASSETS_MANAGER = "ASSETS_MANAGER"
    COMPLAINT_ASSISTANT = "COMPLAINT_ASSISTANT"

class AssetUsage(StrEnum):
    COMPANY = "COMPANY"
    PERSONAL = "PERSONAL"

class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(128), nullable=True)
    employee_code = db.Column(db.String(50))
    department = db.Column(db.String(50))
    location = db.Column(db.String(50))
    mobile = db.Column(db.String(20))

    role = enum_column(UserRole, nullable=False, default=UserRole.EMPLOYEE)
    admin_role = enum_column(AdminRole, nullable=True)
    permissions = db.Column(db.JSON, nullable=False, default=dict)
    asset_usage = enum_column(AssetUsage, nullable=False, default=AssetUsage.COMPANY)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    delete_reason = db.Column(db.String(255))
    deleted_at = db.Column(db.DateTime)
    last_active = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)
    revision = db.Column(db.Integer, nullable=False)

    assets = db.relationship('Asset', backref='holder', lazy=True, foreign_keys='Asset.assigned_to')
    byod_entries = db.relationship('ByodEntry', backref='user', lazy=True, foreign_keys='ByodEntry.user_id')

    __mapper_args__ = {'version_id_col': revision}

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def is_active_account(self):
        return bool(self.is_active) and not self.is_deleted

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'employeeCode': self.employee_code,
            'department': self.department,
            'location': self.location,
            'mobile': self.mobile,
            'role': self.role,
            'adminRole': self.admin_role,
            'permissions': self.permissions or {},
            'assetUsage': self.asset_usage,
            'isActive': self.is_active,
            'isDeleted': self.is_deleted,
            'deleteReason': self.delete_reason,
            'deletedAt': self.deleted_at.isoformat() if self.deleted_at else None,
            'lastActive': self.last_active.isoformat() if self.last_active else None,
            'revision': self.revision,
        }

    def __repr__(self):
        return f"User('{self.email}', '{self.role}', '{self.asset_usage}')"
