# byod_asset_manager/routes/__init__.py
from flask import Blueprint, request

from byod_asset_manager.errors import ValidationError

# Create blueprints
assets_bp = Blueprint('assets', __name__, url_prefix='/assets')
employees_bp = Blueprint('employees', __name__, url_prefix='/employees')
byod_bp = Blueprint('byod', __name__, url_prefix='/byod')
services_bp = Blueprint('services', __name__, url_prefix='/services')
users_bp = Blueprint('users', __name__, url_prefix='/auth')
settings_bp = Blueprint('settings', __name__, url_prefix='/settings')
audit_bp = Blueprint('audit', __name__, url_prefix='/audit')


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def expected_revision(data):
    """Optional compare-and-swap token sent by clients as ``revision``."""
    revision = data.get('revision')
    if revision is None:
        return None
    try:
        return int(revision)
    except (TypeError, ValueError):
        raise ValidationError("revision must be an integer")


# Import views after blueprints are created
from . import assets, employees, byod, service_records, users, settings, audit
