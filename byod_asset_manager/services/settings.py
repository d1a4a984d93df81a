import json
import logging
from decimal import Decimal, InvalidOperation

from byod_asset_manager.errors import ValidationError
from byod_asset_manager.models import AppSettings, AssetStatus
from byod_asset_manager.models.types import coerce_enum
from byod_asset_manager.permissions import Action, Module, require
from byod_asset_manager.services.audit import AuditLogRecorder

logger = logging.getLogger(__name__)

BOOLEAN_FIELDS = (
    'isDepreciationEnabled', 'roundToNearestInteger', 'allowRaiseByodRequest',
    'enableNotifications', 'notifyOnStatusChange', 'notifyOnAssignment',
)


def get_settings(store):
    """Load the settings row, creating it with defaults on first use."""
    settings = store.session.query(AppSettings).order_by(AppSettings.id).first()
    if settings is None:
        settings = AppSettings()
        store.append(settings)
        store.flush()
    return settings


def _clean(key, value):
    if key in BOOLEAN_FIELDS:
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be true or false")
        return value
    if key in ('depreciationRate', 'minAssetValueThreshold'):
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{key} must be a number")
        if not number.is_finite() or number < 0:
            raise ValidationError(f"{key} must be a non-negative number")
        return number
    if key == 'defaultAssetStatus':
        status = coerce_enum(AssetStatus, value, 'default asset status')
        if status in (AssetStatus.ASSIGNED, AssetStatus.REMOVED):
            raise ValidationError(f"Default asset status cannot be {status.value}")
        return status
    if key == 'adminEmailForNotifications':
        if not isinstance(value, str) or '@' not in value:
            raise ValidationError("Admin notification email is invalid")
        return value.strip()
    if key == 'currencySymbol':
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Currency symbol is required")
        return value.strip()
    raise ValidationError(f"Unknown setting: {key}")


def _display(value):
    if isinstance(value, Decimal):
        return float(value)
    return str(value) if isinstance(value, AssetStatus) else value


def update_settings(store, actor, changes):
    """Apply validated changes; one SETTING_CHANGE audit entry per changed key."""
    require(actor, Module.SETTINGS, Action.UPDATE)
    cleaned = {key: _clean(key, value) for key, value in (changes or {}).items()}

    with store.unit_of_work():
        settings = get_settings(store)
        audit = AuditLogRecorder(store)
        for key, value in cleaned.items():
            column = AppSettings.FIELDS[key]
            old = getattr(settings, column)
            if _display(old) == _display(value):
                continue
            setattr(settings, column, value)
            audit.record_for(actor, 'SETTING_CHANGE',
                             f'Changed {key}: {json.dumps(_display(old))} -> {json.dumps(_display(value))}')
            logger.info(f"Setting {key} changed by {actor.email}")
        store.put(settings)
    return settings
