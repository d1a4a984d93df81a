from datetime import datetime
from byod_asset_manager import db
from .asset import AssetStatus
from .types import enum_column

class AppSettings(db.Model):
    """Admin-editable runtime settings, stored as a single row."""
    id = db.Column(db.Integer, primary_key=True)
    depreciation_rate = db.Column(db.Numeric(6, 3), nullable=False, default=2.77)  # monthly %
    currency_symbol = db.Column(db.String(8), nullable=False, default='₹')
    is_depreciation_enabled = db.Column(db.Boolean, nullable=False, default=True)
    round_to_nearest_integer = db.Column(db.Boolean, nullable=False, default=True)
    min_asset_value_threshold = db.Column(db.Numeric(12, 2), nullable=False, default=500)
    default_asset_status = enum_column(AssetStatus, nullable=False, default=AssetStatus.SPARE)
    allow_raise_byod_request = db.Column(db.Boolean, nullable=False, default=True)
    enable_notifications = db.Column(db.Boolean, nullable=False, default=True)
    notify_on_status_change = db.Column(db.Boolean, nullable=False, default=True)
    notify_on_assignment = db.Column(db.Boolean, nullable=False, default=True)
    admin_email_for_notifications = db.Column(db.String(120), nullable=False, default='admin@company.com')
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # API key -> column
    FIELDS = {
        'depreciationRate': 'depreciation_rate',
        'currencySymbol': 'currency_symbol',
        'isDepreciationEnabled': 'is_depreciation_enabled',
        'roundToNearestInteger': 'round_to_nearest_integer',
        'minAssetValueThreshold': 'min_asset_value_threshold',
        'defaultAssetStatus': 'default_asset_status',
        'allowRaiseByodRequest': 'allow_raise_byod_request',
        'enableNotifications': 'enable_notifications',
        'notifyOnStatusChange': 'notify_on_status_change',
        'notifyOnAssignment': 'notify_on_assignment',
        'adminEmailForNotifications': 'admin_email_for_notifications',
    }

    def to_dict(self):
        rv = {}
        for key, column in self.FIELDS.items():
            value = getattr(self, column)
            if column in ('depreciation_rate', 'min_asset_value_threshold') and value is not None:
                value = float(value)
            rv[key] = value
        rv['lastUpdated'] = self.last_updated.isoformat() if self.last_updated else None
        return rv

    def __repr__(self):
        return f"AppSettings(rate={self.depreciation_rate}, enabled={self.is_depreciation_enabled})"
