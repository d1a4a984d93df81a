from byod_asset_manager import db
from datetime import datetime

class AuditLog(db.Model):
    """Immutable record of an administrative action."""
    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    performed_by = db.Column(db.String(64), nullable=False)
    performed_by_name = db.Column(db.String(100), nullable=False)
    target_id = db.Column(db.String(64))
    details = db.Column(db.Text, nullable=False, default='')
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'performedBy': self.performed_by,
            'performedByName': self.performed_by_name,
            'targetId': self.target_id,
            'details': self.details,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"AuditLog('{self.action}', '{self.timestamp}')"
