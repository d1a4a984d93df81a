# byod_asset_manager/models/byod.py
from byod_asset_manager import db
from datetime import datetime
from .types import StrEnum, enum_column

class ByodStatus(StrEnum):
    PENDING = "Pending Submission"
    AWAITING_APPROVAL = "Awaiting IT Approval"
    ACTIVE = "Active"
    REJECTED = "Rejected"
    RETRIEVED_BY_EMPLOYEE = "BYOD Retrieved (Employee)"
    RETRIEVED_BY_ADMIN = "BYOD Retrieved (Admin)"
    INACTIVE_SWITCHED_TO_COMPANY = "Inactive - Switched to Company Assets"

class DeviceType(StrEnum):
    LAPTOP = "Laptop"
    MOBILE = "Mobile"
    TABLET = "Tablet"
    OTHER = "Other"

class EmployeeType(StrEnum):
    PERMANENT = "Permanent"
    CONTRACT = "Contract"
    INTERN = "Intern"

# Legal moves of the request state machine
BYOD_TRANSITIONS = {
    ByodStatus.PENDING: (ByodStatus.AWAITING_APPROVAL,),
    ByodStatus.AWAITING_APPROVAL: (ByodStatus.ACTIVE, ByodStatus.REJECTED),
    ByodStatus.ACTIVE: (
        ByodStatus.RETRIEVED_BY_EMPLOYEE,
        ByodStatus.RETRIEVED_BY_ADMIN,
        ByodStatus.INACTIVE_SWITCHED_TO_COMPANY,
    ),
}

OUTSTANDING_STATUSES = (ByodStatus.PENDING, ByodStatus.AWAITING_APPROVAL)

class ByodEntry(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    employee_name = db.Column(db.String(100), nullable=False)
    employee_type = enum_column(EmployeeType, nullable=False, default=EmployeeType.PERMANENT)
    department = db.Column(db.String(50))
    email = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    device_type = enum_column(DeviceType, nullable=False, default=DeviceType.LAPTOP)
    brand = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    serial_number = db.Column(db.String(100), nullable=False)
    os_version = db.Column(db.String(100))
    imei_mac = db.Column(db.String(100))
    agreement_accepted = db.Column(db.Boolean, nullable=False, default=False)

    status = enum_column(ByodStatus, nullable=False, default=ByodStatus.AWAITING_APPROVAL)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    approved_at = db.Column(db.DateTime)
    approved_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    rejection_reason = db.Column(db.String(500))
    retrieved_at = db.Column(db.DateTime)
    retrieval_reason = db.Column(db.String(500))
    revision = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': revision}

    def can_move_to(self, target):
        return target in BYOD_TRANSITIONS.get(self.status, ())

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'employeeName': self.employee_name,
            'employeeType': self.employee_type,
            'department': self.department,
            'email': self.email,
            'phone': self.phone,
            'deviceType': self.device_type,
            'brand': self.brand,
            'model': self.model,
            'serialNumber': self.serial_number,
            'osVersion': self.os_version,
            'imeiMac': self.imei_mac,
            'agreementAccepted': self.agreement_accepted,
            'status': self.status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'approvedAt': self.approved_at.isoformat() if self.approved_at else None,
            'approvedBy': self.approved_by,
            'rejectionReason': self.rejection_reason,
            'retrievedAt': self.retrieved_at.isoformat() if self.retrieved_at else None,
            'retrievalReason': self.retrieval_reason,
            'revision': self.revision,
        }

    def __repr__(self):
        return f"ByodEntry({self.user_id}, '{self.status}')"
