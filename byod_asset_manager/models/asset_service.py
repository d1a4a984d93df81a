# byod_asset_manager/models/asset_service.py
from datetime import datetime
from byod_asset_manager import db
from .types import StrEnum, enum_column

class ServiceStatus(StrEnum):
    COMPLETED_CLOSED = "Completed / Closed"
    UNCOMPLETED_PENDING = "Uncompleted / Pending"

class AssetService(db.Model):
    """Maintenance or repair ticket raised against an asset"""
    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey('asset.id'), nullable=False)
    asset_code = db.Column(db.String(50), nullable=False)  # denormalized for listings
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    date_of_tt = db.Column(db.Date, nullable=False)
    date_of_close = db.Column(db.Date)
    category = db.Column(db.String(100))
    sub_category = db.Column(db.String(100))
    technician_name = db.Column(db.String(100))
    summary = db.Column(db.Text)
    status = enum_column(ServiceStatus, nullable=False, default=ServiceStatus.UNCOMPLETED_PENDING)
    uncompleted_repairs = db.Column(db.Text)
    parts_replaced = db.Column(db.Text)
    cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    invoice_reference = db.Column(db.String(100))
    conclusion = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    EDITABLE_FIELDS = {
        'dateOfTT': 'date_of_tt',
        'dateOfClose': 'date_of_close',
        'category': 'category',
        'subCategory': 'sub_category',
        'technicianName': 'technician_name',
        'summary': 'summary',
        'status': 'status',
        'uncompletedRepairs': 'uncompleted_repairs',
        'partsReplaced': 'parts_replaced',
        'cost': 'cost',
        'invoiceReference': 'invoice_reference',
        'conclusion': 'conclusion',
    }

    def to_dict(self):
        return {
            'id': self.id,
            'assetId': self.asset_id,
            'assetCode': self.asset_code,
            'userId': self.user_id,
            'dateOfTT': self.date_of_tt.isoformat() if self.date_of_tt else None,
            'dateOfClose': self.date_of_close.isoformat() if self.date_of_close else None,
            'category': self.category,
            'subCategory': self.sub_category,
            'technicianName': self.technician_name,
            'summary': self.summary,
            'status': self.status,
            'uncompletedRepairs': self.uncompleted_repairs,
            'partsReplaced': self.parts_replaced,
            'cost': float(self.cost) if self.cost is not None else 0.0,
            'invoiceReference': self.invoice_reference,
            'conclusion': self.conclusion,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
