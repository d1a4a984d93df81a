"""
ORM-level guards for records that must never change once written.

    AssetHistory  - no UPDATE, no DELETE
    AuditLog      - no UPDATE (eviction of old rows is a bulk delete)
    Asset         - no change of any kind once the stored status is REMOVED

The listeners fire during flush, before any SQL reaches the database, so the
surrounding unit of work rolls back.
"""

import logging

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from byod_asset_manager.errors import InvalidTransition

from .asset import Asset, AssetStatus
from .asset_history import AssetHistory
from .audit_log import AuditLog

logger = logging.getLogger(__name__)


class ImmutableRecordError(InvalidTransition):
    """Attempt to modify an append-only or frozen record."""


def _block_history_update(mapper, connection, target):
    logger.error(f"Blocked update of AssetHistory {target.id}")
    raise ImmutableRecordError("Asset history entries are immutable")


def _block_history_delete(mapper, connection, target):
    logger.error(f"Blocked delete of AssetHistory {target.id}")
    raise ImmutableRecordError("Asset history entries cannot be deleted")


def _block_audit_update(mapper, connection, target):
    logger.error(f"Blocked update of AuditLog {target.id}")
    raise ImmutableRecordError("Audit log entries are immutable")


# Service counters stay derived and may still be refreshed on a removed asset
FROZEN_WHEN_REMOVED = (
    'status', 'asset_code', 'assigned_to', 'is_spare_assignment', 'spare_return_date',
    'removal_data', 'purchase_date', 'purchase_value', 'inventory_category',
)


def _check_removed_asset(mapper, connection, target):
    """Once REMOVED is committed, the asset is frozen."""
    status_history = get_history(target, 'status')
    if status_history.deleted:
        old_status = status_history.deleted[0]
    elif status_history.unchanged:
        old_status = status_history.unchanged[0]
    else:
        return

    if old_status != AssetStatus.REMOVED:
        return

    changed = [name for name in FROZEN_WHEN_REMOVED if get_history(target, name).has_changes()]
    if not changed:
        return

    logger.error(f"Blocked modification of removed asset {target.asset_code}: {changed}")
    raise ImmutableRecordError(f"Asset {target.asset_code} is removed and can no longer change")


_LISTENERS = (
    (AssetHistory, 'before_update', _block_history_update),
    (AssetHistory, 'before_delete', _block_history_delete),
    (AuditLog, 'before_update', _block_audit_update),
    (Asset, 'before_update', _check_removed_asset),
)


def register():
    """Install the listeners once per process."""
    for model, name, fn in _LISTENERS:
        if not event.contains(model, name, fn):
            event.listen(model, name, fn)
