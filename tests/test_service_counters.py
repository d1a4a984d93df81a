from datetime import date

import pytest

from byod_asset_manager import db
from byod_asset_manager.errors import NotFound, PermissionDenied, ValidationError
from byod_asset_manager.models import Asset, AssetService, AuditLog, ServiceStatus
from byod_asset_manager.services.assets import AssetLifecycleController
from byod_asset_manager.services.service_records import (create_service_record, delete_service_record,
                                                         list_service_records, sync_service_counters,
                                                         update_service_record)


def _counters(asset_id):
    asset = db.session.get(Asset, asset_id)
    return asset.total_services, asset.open_services, asset.closed_services


def _ticket(asset_id, **extra):
    data = {'assetId': asset_id, 'dateOfTT': '2024-03-01', 'category': 'Hardware', 'summary': 'Fan noise'}
    data.update(extra)
    return data


def test_counters_follow_service_records(store, admin, make_asset):
    laptop = make_asset('LAP-001')
    other = make_asset('LAP-002')

    first = create_service_record(store, admin, _ticket(laptop.id))
    create_service_record(store, admin, _ticket(laptop.id, status='Completed / Closed', dateOfTT='2024-04-15',
                                                cost='1500'))
    create_service_record(store, admin, _ticket(other.id))

    assert _counters(laptop.id) == (2, 1, 1)
    assert _counters(other.id) == (1, 1, 0)
    assert db.session.get(Asset, laptop.id).last_service_date == date(2024, 4, 15)
    assert first.asset_code == 'LAP-001'

    update_service_record(store, admin, first.id, {'status': ServiceStatus.COMPLETED_CLOSED,
                                                   'dateOfClose': '2024-03-05'})
    assert _counters(laptop.id) == (2, 0, 2)

    delete_service_record(store, admin, first.id)
    assert _counters(laptop.id) == (1, 0, 1)
    assert [a.action for a in AuditLog.query.order_by(AuditLog.id).all()] == [
        'SERVICE_CREATE', 'SERVICE_CREATE', 'SERVICE_CREATE', 'SERVICE_UPDATE', 'SERVICE_DELETE',
    ]


def test_full_recompute_repairs_drift(store, admin, make_asset):
    laptop = make_asset('LAP-001')
    create_service_record(store, admin, _ticket(laptop.id))

    asset = db.session.get(Asset, laptop.id)
    asset.total_services = 42
    db.session.commit()

    with store.unit_of_work():
        assert sync_service_counters(store) == 1
    assert _counters(laptop.id) == (1, 1, 0)

    with store.unit_of_work():
        assert sync_service_counters(store) == 0


def test_counters_refresh_on_removed_asset(store, admin, make_asset):
    laptop = make_asset('LAP-001')
    record = create_service_record(store, admin, _ticket(laptop.id))
    AssetLifecycleController(store).decommission(admin, laptop.id, {'reason': 'Dead', 'approvedBy': 'IT Head'})

    delete_service_record(store, admin, record.id)
    assert _counters(laptop.id) == (0, 0, 0)


def test_service_record_validation(store, admin, make_asset):
    laptop = make_asset('LAP-001')
    with pytest.raises(NotFound):
        create_service_record(store, admin, _ticket(999))
    with pytest.raises(ValidationError):
        create_service_record(store, admin, _ticket(laptop.id, dateOfTT=''))
    with pytest.raises(ValidationError):
        create_service_record(store, admin, _ticket(laptop.id, cost='-10'))
    with pytest.raises(ValidationError):
        create_service_record(store, admin, _ticket(laptop.id, status='Half done'))
    assert AssetService.query.count() == 0
    assert _counters(laptop.id) == (0, 0, 0)


def test_service_records_need_services_module(store, operator, make_asset):
    laptop = make_asset('LAP-001')
    assert list_service_records(store, operator) == []
    with pytest.raises(PermissionDenied):
        create_service_record(store, operator, _ticket(laptop.id))
