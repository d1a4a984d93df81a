from byod_asset_manager import mail
from byod_asset_manager.models import AssetStatus, AuditLog, ByodStatus


def _register(client, code='LAP-001', **extra):
    data = {'assetCode': code, 'purchaseDate': '2024-01-10', 'purchaseValue': 60000}
    data.update(extra)
    return client.post('/assets/', json=data)


def test_requires_login(client):
    response = client.get('/assets/')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Authentication required'


def test_login_logout(client, employee):
    response = client.post('/auth/login', json={'email': 'e1@example.com', 'password': 'nope'})
    assert response.status_code == 401

    response = client.post('/auth/login', json={'email': 'e1@example.com', 'password': 'password'})
    assert response.status_code == 200
    assert response.get_json()['lastActive'] is not None
    assert client.get('/auth/me').get_json()['email'] == 'e1@example.com'

    client.post('/auth/logout')
    assert client.get('/auth/me').status_code == 401


def test_register_and_view_asset(client, admin, login):
    login('admin@example.com')
    response = _register(client)
    assert response.status_code == 201
    asset = response.get_json()
    assert asset['status'] == 'Ready to Use'

    response = client.get(f"/assets/{asset['id']}")
    assert response.status_code == 200
    assert 'bookValue' in response.get_json()
    assert response.get_json()['history'] == []

    assert client.get('/assets/999').status_code == 404


def test_validation_errors_are_json(client, admin, login):
    login('admin@example.com')
    response = _register(client, purchaseDate='soon')
    assert response.status_code == 400
    body = response.get_json()
    assert body['type'] == 'ValidationError'
    assert body['status'] == 400


def test_assign_return_flow(client, admin, employee, login):
    login('admin@example.com')
    asset_id = _register(client).get_json()['id']

    with mail.record_messages() as outbox:
        response = client.post(f'/assets/{asset_id}/assign', json={'userId': employee.id})
    assert response.status_code == 200
    assert response.get_json()['status'] == AssetStatus.ASSIGNED.value
    assert len(outbox) == 1

    response = client.post(f'/employees/{employee.id}/usage', json={'assetUsage': 'PERSONAL'})
    assert response.status_code == 422
    assert response.get_json()['type'] == 'PolicyViolation'

    response = client.post(f'/assets/{asset_id}/return', json={'destination': 'Ready to Use'})
    assert response.status_code == 200
    assert response.get_json()['assignedTo'] is None

    response = client.post(f'/employees/{employee.id}/usage', json={'assetUsage': 'PERSONAL'})
    assert response.status_code == 200
    assert response.get_json()['assetUsage'] == 'PERSONAL'


def test_stale_revision_conflict(client, admin, employee, login):
    login('admin@example.com')
    asset = _register(client).get_json()
    client.post(f"/assets/{asset['id']}/status", json={'status': 'Spare', 'revision': asset['revision']})

    response = client.post(f"/assets/{asset['id']}/assign",
                           json={'userId': employee.id, 'revision': asset['revision']})
    assert response.status_code == 409
    assert response.get_json()['currentRevision'] == asset['revision'] + 1


def test_decommission_then_frozen(client, admin, login):
    login('admin@example.com')
    asset_id = _register(client).get_json()['id']
    response = client.post(f'/assets/{asset_id}/decommission',
                           json={'removalData': {'reason': 'Broken screen', 'approvedBy': 'IT Head'}})
    assert response.get_json()['status'] == 'Removed'

    response = client.post(f'/assets/{asset_id}/status', json={'status': 'Ready to Use'})
    assert response.status_code == 409


def test_employee_cannot_use_admin_routes(client, employee, login):
    login('e1@example.com')
    assert _register(client).status_code == 403
    assert client.get('/settings/').status_code == 403
    assert client.get('/audit/').status_code == 403
    assert client.get('/assets/mine').get_json() == []


def test_byod_flow(client, admin, employee, login):
    login('e1@example.com')
    device = {'agreementAccepted': True, 'brand': 'Apple', 'model': 'MacBook Pro', 'serialNumber': 'SN-1'}
    response = client.post('/byod/', json=device)
    assert response.status_code == 201
    entry_id = response.get_json()['id']

    response = client.post('/byod/', json=device)
    assert response.status_code == 409
    assert response.get_json()['type'] == 'DuplicateRequest'
    assert response.get_json()['entryId'] == entry_id

    assert client.post(f'/byod/{entry_id}/approve').status_code == 403
    client.post('/auth/logout')

    login('admin@example.com')
    response = client.post(f'/byod/{entry_id}/approve')
    assert response.status_code == 200
    body = response.get_json()
    assert body['entry']['status'] == ByodStatus.ACTIVE.value
    assert body['reclaimedAssetIds'] == []

    response = client.get('/byod/', query_string={'status': 'Active'})
    assert [e['id'] for e in response.get_json()] == [entry_id]

    response = client.post(f'/employees/{employee.id}/usage', json={'assetUsage': 'COMPANY'})
    assert response.get_json()['assetUsage'] == 'COMPANY'
    entry = client.get('/byod/').get_json()[0]
    assert entry['status'] == ByodStatus.INACTIVE_SWITCHED_TO_COMPANY.value


def test_employee_admin_routes(client, admin, login):
    login('admin@example.com')
    response = client.post('/employees/', json={'name': 'Meera', 'email': 'meera@example.com',
                                                'password': 'secret1'})
    assert response.status_code == 201
    user_id = response.get_json()['id']

    response = client.post('/employees/admins', json={'name': 'Ops', 'email': 'ops@example.com',
                                                      'password': 'secret1', 'adminRole': 'OPERATOR'})
    assert response.status_code == 201
    admin_id = response.get_json()['id']

    response = client.post(f'/employees/{admin_id}/permissions', json={'permissions': {'byod': {'update': True}}})
    assert response.get_json()['permissions']['byod'] == {'read': True, 'write': False, 'update': True}

    assert [u['email'] for u in client.get('/employees/').get_json()] == ['meera@example.com']

    response = client.post(f'/employees/{user_id}/delete', json={'reason': 'Duplicate account'})
    assert response.get_json()['user']['isDeleted'] is True
    assert client.get('/employees/').get_json() == []


def test_services_routes(client, admin, login):
    login('admin@example.com')
    asset_id = _register(client).get_json()['id']
    response = client.post('/services/', json={'assetId': asset_id, 'dateOfTT': '2024-02-01',
                                               'summary': 'Keyboard replaced'})
    assert response.status_code == 201
    record_id = response.get_json()['id']

    assert client.get(f'/assets/{asset_id}').get_json()['totalServices'] == 1
    assert len(client.get('/services/', query_string={'assetId': asset_id}).get_json()) == 1

    client.patch(f'/services/{record_id}', json={'status': 'Completed / Closed'})
    assert client.get(f'/assets/{asset_id}').get_json()['closedServices'] == 1

    client.delete(f'/services/{record_id}')
    assert client.get(f'/assets/{asset_id}').get_json()['totalServices'] == 0


def test_settings_and_audit(client, admin, login):
    login('admin@example.com')
    assert client.get('/settings/').get_json()['depreciationRate'] == 2.77

    response = client.patch('/settings/', json={'depreciationRate': 3, 'currencySymbol': '$'})
    assert response.status_code == 200
    assert response.get_json()['currencySymbol'] == '$'

    response = client.patch('/settings/', json={'defaultAssetStatus': 'Removed'})
    assert response.status_code == 400

    entries = client.get('/audit/', query_string={'action': 'SETTING_CHANGE'}).get_json()
    assert len(entries) == 2
    assert AuditLog.query.count() == 2


def test_summary(client, admin, login):
    login('admin@example.com')
    _register(client)
    _register(client, code='MOU-001', inventoryCategory='MOUSE')
    summary = client.get('/assets/summary').get_json()
    assert summary['byCategory']['ASSET'] == 1
    assert summary['byCategory']['MOUSE'] == 1


def test_assign_spare_flag_must_be_boolean(client, admin, employee, login):
    login('admin@example.com')
    client.post(f'/employees/{employee.id}/usage', json={'assetUsage': 'PERSONAL'})
    asset_id = _register(client).get_json()['id']

    response = client.post(f'/assets/{asset_id}/assign', json={'userId': employee.id, 'isSpare': 'false'})
    assert response.status_code == 400
    assert response.get_json()['type'] == 'ValidationError'

    response = client.post(f'/assets/{asset_id}/assign', json={'userId': employee.id, 'isSpare': False})
    assert response.status_code == 422

    response = client.post(f'/assets/{asset_id}/assign', json={'userId': employee.id, 'isSpare': True})
    assert response.status_code == 200
    assert response.get_json()['isSpareAssignment'] is True


def test_edit_employee_and_reset_password(client, admin, employee, login):
    login('admin@example.com')
    response = client.patch(f'/employees/{employee.id}', json={'location': 'Pune', 'revision': 1})
    assert response.status_code == 200
    assert response.get_json()['location'] == 'Pune'

    response = client.patch(f'/employees/{employee.id}', json={'location': 'Delhi', 'revision': 1})
    assert response.status_code == 409

    response = client.post(f'/employees/{employee.id}/password', json={'password': 'brand-new'})
    assert response.status_code == 200
    client.post('/auth/logout')

    response = client.post('/auth/login', json={'email': 'e1@example.com', 'password': 'brand-new'})
    assert response.status_code == 200


def test_edit_admin(client, admin, operator, login):
    login('admin@example.com')
    response = client.patch(f'/employees/admins/{operator.id}', json={'name': 'Ops Lead'})
    assert response.status_code == 200
    assert response.get_json()['name'] == 'Ops Lead'
    assert AuditLog.query.filter_by(action='ADMIN_UPDATE').count() == 1
