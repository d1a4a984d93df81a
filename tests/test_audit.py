import pytest

from byod_asset_manager import db
from byod_asset_manager.errors import Fatal
from byod_asset_manager.models import AuditLog
from byod_asset_manager.models.immutability import ImmutableRecordError
from byod_asset_manager.services.audit import AuditLogRecorder


def test_keeps_only_the_newest_entries(store):
    recorder = AuditLogRecorder(store)
    assert recorder.limit == 500
    with store.unit_of_work():
        for i in range(501):
            recorder.record('TEST_EVENT', 'sys', 'System', f'entry {i}')

    assert AuditLog.query.count() == 500
    details = [e.details for e in AuditLog.query.order_by(AuditLog.id).all()]
    assert details[0] == 'entry 1'
    assert details[-1] == 'entry 500'


def test_eviction_with_custom_limit(store):
    recorder = AuditLogRecorder(store, limit=3)
    for i in range(5):
        with store.unit_of_work():
            recorder.record('TEST_EVENT', 'sys', 'System', f'entry {i}')
    assert [e.details for e in recorder.recent()] == ['entry 4', 'entry 3', 'entry 2']


def test_limit_comes_from_config(app, store):
    app.config['AUDIT_LOG_LIMIT'] = 2
    recorder = AuditLogRecorder(store)
    with store.unit_of_work():
        for i in range(4):
            recorder.record('TEST_EVENT', 'sys', 'System', f'entry {i}')
    assert AuditLog.query.count() == 2


def test_record_for_actor_and_system(store, admin):
    recorder = AuditLogRecorder(store)
    with store.unit_of_work():
        recorder.record_for(admin, 'SETTING_CHANGE', 'by a person', target_id=7)
        recorder.record_for(None, 'SETTING_CHANGE', 'by the system')

    person, system = AuditLog.query.order_by(AuditLog.id).all()
    assert person.performed_by == str(admin.id)
    assert person.performed_by_name == 'Super Admin'
    assert person.target_id == '7'
    assert (system.performed_by, system.performed_by_name) == ('sys', 'System')


def test_recent_filters_by_action(store):
    recorder = AuditLogRecorder(store)
    with store.unit_of_work():
        recorder.record('A', 'sys', 'System', 'one')
        recorder.record('B', 'sys', 'System', 'two')
        recorder.record('A', 'sys', 'System', 'three')
    assert [e.details for e in recorder.recent(action='A')] == ['three', 'one']
    assert [e.details for e in recorder.recent(limit=1)] == ['three']


def test_entries_cannot_be_edited(store):
    with store.unit_of_work():
        AuditLogRecorder(store).record('A', 'sys', 'System', 'original')
    entry = AuditLog.query.one()
    entry.details = 'tampered'
    with pytest.raises(ImmutableRecordError):
        with store.unit_of_work():
            store.put(entry)
    assert db.session.get(AuditLog, entry.id).details == 'original'


def test_write_failure_is_fatal(store, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken_flush():
        raise OperationalError('INSERT INTO audit_log', {}, Exception('disk I/O error'))

    monkeypatch.setattr(store, 'flush', broken_flush)
    with pytest.raises(Fatal):
        with store.unit_of_work():
            AuditLogRecorder(store).record('A', 'sys', 'System', 'lost')
    assert AuditLog.query.count() == 0
