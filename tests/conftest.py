from datetime import date

import pytest

from byod_asset_manager import create_app, db, bcrypt
from byod_asset_manager.config import TestConfig
from byod_asset_manager.models import Asset, AssetStatus, AssetUsage, AdminRole, InventoryCategory, User, UserRole
from byod_asset_manager.permissions import preset_for
from byod_asset_manager.store import EntityStore


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return EntityStore()


@pytest.fixture
def make_user(app):
    def _make(name, email=None, role=UserRole.EMPLOYEE, admin_role=None, usage=AssetUsage.COMPANY,
              password='password', permissions=None):
        if permissions is None:
            permissions = preset_for(admin_role).to_dict() if admin_role else {}
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=bcrypt.generate_password_hash(password).decode('utf-8'),
            role=role,
            admin_role=admin_role,
            asset_usage=usage,
            permissions=permissions,
            is_active=True,
            is_deleted=False,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user('Super Admin', email='admin@example.com', role=UserRole.ADMIN,
                     admin_role=AdminRole.SUPER_ADMIN)


@pytest.fixture
def operator(make_user):
    return make_user('Read Only', email='operator@example.com', role=UserRole.ADMIN,
                     admin_role=AdminRole.OPERATOR)


@pytest.fixture
def employee(make_user):
    return make_user('E1', email='e1@example.com')


@pytest.fixture
def make_asset(app):
    def _make(code, category=InventoryCategory.ASSET, status=AssetStatus.READY_TO_USE,
              purchase_date=date(2024, 1, 10), purchase_value=60000):
        asset = Asset(asset_code=code, purchase_date=purchase_date, purchase_value=purchase_value,
                      inventory_category=category, status=status)
        db.session.add(asset)
        db.session.commit()
        return asset
    return _make


@pytest.fixture
def login(client):
    def _login(email, password='password'):
        response = client.post('/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200
        return response
    return _login
