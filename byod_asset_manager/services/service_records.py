import logging
from collections import defaultdict

from byod_asset_manager.errors import ValidationError
from byod_asset_manager.models import Asset, AssetService, ServiceStatus, User
from byod_asset_manager.models.asset import parse_date, parse_money
from byod_asset_manager.models.types import coerce_enum
from byod_asset_manager.permissions import Action, Module, require
from byod_asset_manager.services.audit import AuditLogRecorder

logger = logging.getLogger(__name__)


def sync_service_counters(store):
    """
    Full recompute of total/open/closed service counts for every asset.
    Called after any write to the service-record collection.
    """
    totals = defaultdict(lambda: {'total': 0, 'open': 0, 'closed': 0, 'last': None})
    for record in store.list(AssetService):
        counts = totals[record.asset_id]
        counts['total'] += 1
        if record.status == ServiceStatus.UNCOMPLETED_PENDING:
            counts['open'] += 1
        elif record.status == ServiceStatus.COMPLETED_CLOSED:
            counts['closed'] += 1
        if counts['last'] is None or (record.date_of_tt and record.date_of_tt > counts['last']):
            counts['last'] = record.date_of_tt

    changed = 0
    for asset in store.list(Asset):
        counts = totals.get(asset.id, {'total': 0, 'open': 0, 'closed': 0, 'last': None})
        values = (counts['total'], counts['open'], counts['closed'], counts['last'])
        if values == (asset.total_services, asset.open_services, asset.closed_services, asset.last_service_date):
            continue
        asset.total_services, asset.open_services, asset.closed_services, asset.last_service_date = values
        store.put(asset)
        changed += 1
    logger.debug(f"Service counters refreshed on {changed} asset(s)")
    return changed


def _apply(record, data):
    for key, column in AssetService.EDITABLE_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if column in ('date_of_tt', 'date_of_close'):
            value = parse_date(value, key, required=(column == 'date_of_tt'))
        elif column == 'status':
            value = coerce_enum(ServiceStatus, value, 'service status')
        elif column == 'cost':
            value = parse_money(value, 'cost')
        setattr(record, column, value)


def create_service_record(store, actor, data):
    require(actor, Module.SERVICES, Action.WRITE)
    data = data or {}
    with store.unit_of_work():
        asset = store.require(Asset, data.get('assetId'))
        user_id = data.get('userId')
        if user_id is not None:
            store.require(User, user_id, fresh=False)
        if not data.get('dateOfTT'):
            raise ValidationError("Date of ticket is required")

        record = AssetService(asset_id=asset.id, asset_code=asset.asset_code, user_id=user_id)
        _apply(record, data)
        if record.status is None:
            record.status = ServiceStatus.UNCOMPLETED_PENDING
        if record.cost is None:
            record.cost = 0
        store.append(record)
        store.flush()
        sync_service_counters(store)
        AuditLogRecorder(store).record_for(actor, 'SERVICE_CREATE',
                                           f'Logged service for {asset.asset_code}', target_id=record.id)
    logger.info(f"Service record {record.id} created for {asset.asset_code}")
    return record


def update_service_record(store, actor, record_id, data):
    require(actor, Module.SERVICES, Action.UPDATE)
    with store.unit_of_work():
        record = store.require(AssetService, record_id)
        _apply(record, data or {})
        store.put(record)
        store.flush()
        sync_service_counters(store)
        AuditLogRecorder(store).record_for(actor, 'SERVICE_UPDATE',
                                           f'Updated service {record.id} for {record.asset_code}',
                                           target_id=record.id)
    logger.info(f"Service record {record.id} updated")
    return record


def delete_service_record(store, actor, record_id):
    require(actor, Module.SERVICES, Action.UPDATE)
    with store.unit_of_work():
        record = store.require(AssetService, record_id)
        asset_code = record.asset_code
        store.delete(record)
        store.flush()
        sync_service_counters(store)
        AuditLogRecorder(store).record_for(actor, 'SERVICE_DELETE',
                                           f'Deleted service {record_id} for {asset_code}',
                                           target_id=record_id)
    logger.info(f"Service record {record_id} deleted")


def list_service_records(store, actor, asset_id=None):
    require(actor, Module.SERVICES, Action.READ)
    criteria = [AssetService.asset_id == asset_id] if asset_id is not None else []
    return store.list(AssetService, *criteria, order_by=AssetService.created_at.desc())
