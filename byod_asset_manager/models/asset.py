# byod_asset_manager/models/asset.py
from datetime import datetime
from decimal import Decimal, InvalidOperation

from byod_asset_manager import db
from byod_asset_manager.errors import ValidationError
from .types import StrEnum, coerce_enum, enum_column

class AssetStatus(StrEnum):
    READY_TO_USE = "Ready to Use"
    SPARE = "Spare"
    ASSIGNED = "Assigned"
    PENDING_AUDIT = "Pending Audit"
    UNDER_REPAIR = "Under Repair"
    UNREPAIRABLE = "Unrepairable"
    STOLEN = "Stolen"
    MISSING = "Missing"
    E_WASTE = "E-Waste"
    REMOVED = "Removed"

class InventoryCategory(StrEnum):
    ASSET = "ASSET"
    MOUSE = "MOUSE"
    ACCESSORY = "ACCESSORY"

# Where a returned asset may go
RETURN_DESTINATIONS = (
    AssetStatus.READY_TO_USE,
    AssetStatus.SPARE,
    AssetStatus.PENDING_AUDIT,
    AssetStatus.UNDER_REPAIR,
)

REMOVAL_FIELDS = (
    'auditStatus', 'statusToCheck', 'adminRemovalDate', 'reason', 'approvedBy',
    'conditionAtRemoval', 'valueAtRemoval', 'proofRef', 'remark',
)
REQUIRED_REMOVAL_FIELDS = ('reason', 'approvedBy')

class Asset(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    asset_code = db.Column(db.String(50), unique=True, nullable=False)
    asset_type = db.Column(db.String(50), nullable=False, default='Laptop')
    brand = db.Column(db.String(100), default='')
    model = db.Column(db.String(100), default='')
    serial_number = db.Column(db.String(100), default='')
    inventory_category = enum_column(InventoryCategory, nullable=False, default=InventoryCategory.ASSET)
    status = enum_column(AssetStatus, nullable=False, default=AssetStatus.READY_TO_USE)
    purchase_date = db.Column(db.Date, nullable=False)
    purchase_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    assigned_to = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    is_spare_assignment = db.Column(db.Boolean, nullable=False, default=False)
    spare_return_date = db.Column(db.Date, nullable=True)

    # Derived from AssetService rows, never hand-edited
    total_services = db.Column(db.Integer, nullable=False, default=0)
    open_services = db.Column(db.Integer, nullable=False, default=0)
    closed_services = db.Column(db.Integer, nullable=False, default=0)
    last_service_date = db.Column(db.Date, nullable=True)

    removal_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    revision = db.Column(db.Integer, nullable=False)

    history = db.relationship('AssetHistory', backref='asset', lazy=True, order_by='AssetHistory.id')
    service_records = db.relationship('AssetService', backref='asset', lazy=True)

    __mapper_args__ = {'version_id_col': revision}

    def __init__(self, asset_code, purchase_date, purchase_value=0, inventory_category=None,
                 status=None, asset_type='Laptop', brand='', model='', serial_number=''):
        # Standardize asset code (e.g., uppercase, remove extra spaces)
        asset_code = str(asset_code or '').strip().upper()
        if not asset_code:
            raise ValidationError("Asset code is required")
        self.asset_code = asset_code

        self.inventory_category = coerce_enum(InventoryCategory, inventory_category or InventoryCategory.ASSET,
                                              'inventory category')
        self.status = coerce_enum(AssetStatus, status or AssetStatus.READY_TO_USE, 'status')
        self.purchase_date = parse_date(purchase_date, 'purchase date', required=True)
        self.purchase_value = parse_money(purchase_value, 'purchase value')

        self.asset_type = (asset_type or 'Laptop').strip()
        self.brand = (brand or '').strip()
        self.model = (model or '').strip()
        self.serial_number = (serial_number or '').strip()
        self.is_spare_assignment = False
        self.total_services = 0
        self.open_services = 0
        self.closed_services = 0

    @property
    def is_removed(self):
        return self.status == AssetStatus.REMOVED

    def clear_assignment(self):
        self.assigned_to = None
        self.is_spare_assignment = False
        self.spare_return_date = None

    def to_dict(self):
        return {
            'id': self.id,
            'assetCode': self.asset_code,
            'assetType': self.asset_type,
            'brand': self.brand,
            'model': self.model,
            'serialNumber': self.serial_number,
            'inventoryCategory': self.inventory_category,
            'status': self.status,
            'purchaseDate': self.purchase_date.isoformat() if self.purchase_date else None,
            'purchaseValue': float(self.purchase_value) if self.purchase_value is not None else None,
            'assignedTo': self.assigned_to,
            'isSpareAssignment': self.is_spare_assignment,
            'spareReturnDate': self.spare_return_date.isoformat() if self.spare_return_date else None,
            'totalServices': self.total_services,
            'openServices': self.open_services,
            'closedServices': self.closed_services,
            'lastServiceDate': self.last_service_date.isoformat() if self.last_service_date else None,
            'removalData': self.removal_data,
            'revision': self.revision,
        }

    def __repr__(self):
        return f'<Asset {self.asset_code}: {self.inventory_category} ({self.status})>'


def parse_date(value, field, required=False):
    if value is None or value == '':
        if required:
            raise ValidationError(f"{field.capitalize()} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if hasattr(value, 'isoformat') and not isinstance(value, str):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


def parse_money(value, field):
    try:
        amount = Decimal(str(value if value not in (None, '') else 0))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field.capitalize()} must be a non-negative number")
    return amount
