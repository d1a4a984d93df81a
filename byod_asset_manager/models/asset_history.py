from byod_asset_manager import db
from datetime import datetime
from .types import StrEnum, enum_column

class HistoryType(StrEnum):
    ASSIGNMENT = "ASSIGNMENT"
    RETURN = "RETURN"
    REPLACEMENT = "REPLACEMENT"

class AssetHistory(db.Model):
    """Append-only record of assignment and return events."""
    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey('asset.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True) # Nullable for system events
    event_type = enum_column(HistoryType, nullable=False)
    note = db.Column(db.String(500), nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'assetId': self.asset_id,
            'userId': self.user_id,
            'type': self.event_type,
            'note': self.note,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"AssetHistory('{self.event_type}', '{self.timestamp}')"
