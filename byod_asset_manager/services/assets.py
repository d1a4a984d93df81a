"""
Asset lifecycle: register, assign, return, manual status change and
decommission.

Status machine::

    READY_TO_USE / SPARE / PENDING_AUDIT / UNDER_REPAIR / ... --assign--> ASSIGNED
    ASSIGNED --return--> READY_TO_USE | SPARE | PENDING_AUDIT | UNDER_REPAIR
    any (except REMOVED) --set_status--> any (except REMOVED)
    any (except REMOVED) --decommission--> REMOVED   (terminal)

Every transition re-reads the asset before validating, runs in one unit of
work with its history and audit rows, and only then triggers notifications.
"""

import logging
from datetime import datetime

from byod_asset_manager.errors import InvalidState, InvalidTransition, PolicyViolation, ValidationError
from byod_asset_manager.models import (Asset, AssetHistory, AssetStatus, AssetUsage, HistoryType,
                                       InventoryCategory, User, UserRole)
from byod_asset_manager.models.asset import (REMOVAL_FIELDS, REQUIRED_REMOVAL_FIELDS, RETURN_DESTINATIONS,
                                             parse_date, parse_money)
from byod_asset_manager.models.types import coerce_enum
from byod_asset_manager.permissions import Action, Module, module_for_category, require
from byod_asset_manager.services import notifications
from byod_asset_manager.services.audit import AuditLogRecorder
from byod_asset_manager.services.settings import get_settings
from byod_asset_manager.valuation import asset_age_in_months, book_value

logger = logging.getLogger(__name__)

DETAIL_FIELDS = {
    'assetType': 'asset_type',
    'brand': 'brand',
    'model': 'model',
    'serialNumber': 'serial_number',
    'purchaseDate': 'purchase_date',
    'purchaseValue': 'purchase_value',
}


def violates_personal_policy(user, asset, is_spare):
    """A PERSONAL-mode user may only hold ASSET-category hardware as a spare."""
    return (user.asset_usage == AssetUsage.PERSONAL
            and asset.inventory_category == InventoryCategory.ASSET
            and not is_spare)


class AssetLifecycleController:
    def __init__(self, store):
        self.store = store
        self.audit = AuditLogRecorder(store)

    # -- reads -------------------------------------------------------------

    def get(self, actor, asset_id):
        asset = self.store.require(Asset, asset_id)
        require(actor, module_for_category(asset.inventory_category), Action.READ)
        return asset

    def list(self, actor, category=None, status=None, query=None):
        category = coerce_enum(InventoryCategory, category or InventoryCategory.ASSET, 'inventory category')
        require(actor, module_for_category(category), Action.READ)
        criteria = [Asset.inventory_category == category]
        if status:
            criteria.append(Asset.status == coerce_enum(AssetStatus, status, 'status'))
        if query:
            like = f'%{query}%'
            criteria.append(Asset.asset_code.ilike(like) | Asset.brand.ilike(like) | Asset.model.ilike(like))
        return self.store.list(Asset, *criteria, order_by=Asset.asset_code)

    def held_by(self, user_id):
        return self.store.list(Asset, Asset.assigned_to == user_id, order_by=Asset.id)

    def describe(self, asset, settings=None, now=None):
        """Display record including the computed book value."""
        settings = settings or get_settings(self.store)
        now = now or datetime.utcnow()
        rv = asset.to_dict()
        value = book_value(asset, settings, now=now)
        rv['bookValue'] = float(value) if not isinstance(value, int) else value
        rv['ageInMonths'] = max(0, asset_age_in_months(asset.purchase_date, now))
        return rv

    def summary(self, actor, now=None):
        """Counts per category and status, plus assets below the value threshold."""
        require(actor, Module.DASHBOARD, Action.READ)
        settings = get_settings(self.store)
        threshold = float(settings.min_asset_value_threshold)
        by_category = {c.value: 0 for c in InventoryCategory}
        by_status = {s.value: 0 for s in AssetStatus}
        below_threshold = []
        for asset in self.store.list(Asset, order_by=Asset.asset_code):
            by_status[asset.status.value] += 1
            if asset.is_removed:
                continue
            by_category[asset.inventory_category.value] += 1
            if float(book_value(asset, settings, now=now)) < threshold:
                below_threshold.append(asset.asset_code)
        return {
            'byCategory': by_category,
            'byStatus': by_status,
            'belowValueThreshold': below_threshold,
        }

    # -- mutations ---------------------------------------------------------

    def register(self, actor, data):
        data = data or {}
        category = coerce_enum(InventoryCategory, data.get('inventoryCategory') or InventoryCategory.ASSET,
                               'inventory category')
        require(actor, module_for_category(category), Action.WRITE)

        status = coerce_enum(AssetStatus, data.get('status') or AssetStatus.READY_TO_USE, 'status')
        if status in (AssetStatus.ASSIGNED, AssetStatus.REMOVED):
            raise ValidationError(f"Assets cannot be registered as {status.value}; use assign or decommission")

        with self.store.unit_of_work():
            asset = Asset(
                asset_code=data.get('assetCode'),
                purchase_date=data.get('purchaseDate'),
                purchase_value=data.get('purchaseValue', 0),
                inventory_category=category,
                status=status,
                asset_type=data.get('assetType') or 'Laptop',
                brand=data.get('brand'),
                model=data.get('model'),
                serial_number=data.get('serialNumber'),
            )
            if self.store.count(Asset, Asset.asset_code == asset.asset_code):
                raise ValidationError(f"Asset code {asset.asset_code} already exists")
            self.store.append(asset)
            self.store.flush()
            self.audit.record_for(actor, 'ASSET_CREATE', f'Registered new asset: {asset.asset_code}',
                                  target_id=asset.id)
        logger.info(f"Asset {asset.asset_code} registered as {asset.status.value}")
        return asset

    def update_details(self, actor, asset_id, changes, expected_revision=None):
        changes = changes or {}
        unknown = set(changes) - set(DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited here: {', '.join(sorted(unknown))}")

        with self.store.unit_of_work():
            asset = self.store.require(Asset, asset_id)
            require(actor, module_for_category(asset.inventory_category), Action.UPDATE)
            self.store.put(asset, expected_revision)
            if asset.is_removed:
                raise InvalidState(f"Asset {asset.asset_code} is removed and frozen")
            for key, value in changes.items():
                column = DETAIL_FIELDS[key]
                if column == 'purchase_date':
                    value = parse_date(value, 'purchase date', required=True)
                elif column == 'purchase_value':
                    value = parse_money(value, 'purchase value')
                else:
                    value = (value or '').strip()
                setattr(asset, column, value)
            self.audit.record_for(actor, 'ASSET_UPDATE', f'Updated asset: {asset.asset_code}', target_id=asset.id)
        return asset

    def assign(self, actor, asset_id, user_id, is_spare=False, spare_return_date=None, expected_revision=None):
        if is_spare is None:
            is_spare = False
        if not isinstance(is_spare, bool):
            raise ValidationError("isSpare must be true or false")
        spare_return_date = parse_date(spare_return_date, 'spare return date') if is_spare else None

        with self.store.unit_of_work():
            asset = self.store.require(Asset, asset_id)
            require(actor, module_for_category(asset.inventory_category), Action.UPDATE)
            self.store.put(asset, expected_revision)
            if asset.status in (AssetStatus.REMOVED, AssetStatus.ASSIGNED):
                raise InvalidState(f"Asset {asset.asset_code} is {asset.status.value} and cannot be assigned")

            employee = self.store.require(User, user_id)
            if employee.role != UserRole.EMPLOYEE or not employee.is_active_account:
                raise InvalidState(f"{employee.name} is not an active employee")
            if violates_personal_policy(employee, asset, is_spare):
                logger.warning(f"Blocked non-spare assignment of {asset.asset_code} to personal-mode user {employee.id}")
                raise PolicyViolation(
                    f"{employee.name} is on personal-laptop mode; company laptops can only be assigned as spare units",
                    payload={'userId': employee.id, 'assetId': asset.id},
                )

            asset.status = AssetStatus.ASSIGNED
            asset.assigned_to = employee.id
            asset.is_spare_assignment = is_spare
            asset.spare_return_date = spare_return_date

            note = None
            if is_spare:
                expected = spare_return_date.isoformat() if spare_return_date else 'Not Defined'
                note = f'Spare Laptop Assignment. Expected Return: {expected}'
            self.store.append(AssetHistory(asset_id=asset.id, user_id=employee.id,
                                           event_type=HistoryType.ASSIGNMENT, note=note))
            self.audit.record_for(
                actor, 'ASSET_ASSIGN',
                f"Assigned asset {asset.asset_code} to {employee.name}{' (Spare Mode)' if is_spare else ''}",
                target_id=asset.id,
            )
            settings = get_settings(self.store)

        logger.info(f"Asset {asset.asset_code} assigned to user {employee.id} (spare={is_spare})")
        notifications.send_assignment_email(settings, asset, employee)
        return asset

    def return_asset(self, actor, asset_id, destination, expected_revision=None):
        destination = coerce_enum(AssetStatus, destination, 'destination status')
        if destination not in RETURN_DESTINATIONS:
            raise ValidationError(
                f"Returned assets can only go to {', '.join(s.value for s in RETURN_DESTINATIONS)}"
            )

        with self.store.unit_of_work():
            asset = self.store.require(Asset, asset_id)
            require(actor, module_for_category(asset.inventory_category), Action.UPDATE)
            self.store.put(asset, expected_revision)
            if asset.status != AssetStatus.ASSIGNED:
                raise InvalidState(f"Asset {asset.asset_code} is not assigned")
            previous_holder = asset.assigned_to
            self.unlink(asset, destination, note=None)
            self.audit.record_for(actor, 'ASSET_RETURN',
                                  f'Asset {asset.asset_code} returned from user: {previous_holder}',
                                  target_id=asset.id)
        logger.info(f"Asset {asset.asset_code} returned to {destination.value}")
        return asset

    def set_status(self, actor, asset_id, new_status, expected_revision=None):
        new_status = coerce_enum(AssetStatus, new_status, 'status')
        if new_status == AssetStatus.REMOVED:
            raise InvalidTransition("Use decommission to remove an asset")

        with self.store.unit_of_work():
            asset = self.store.require(Asset, asset_id)
            require(actor, module_for_category(asset.inventory_category), Action.UPDATE)
            self.store.put(asset, expected_revision)
            old_status = asset.status
            if old_status == AssetStatus.REMOVED:
                raise InvalidTransition(f"Asset {asset.asset_code} is removed; no further transitions")
            if new_status == AssetStatus.ASSIGNED and old_status != AssetStatus.ASSIGNED:
                raise InvalidTransition("Use assign to give an asset to an employee")

            if old_status == AssetStatus.ASSIGNED and new_status != AssetStatus.ASSIGNED:
                self.unlink(asset, new_status,
                            note=f'Manual status transition: {old_status.value} -> {new_status.value}')
            else:
                asset.status = new_status
            self.audit.record_for(actor, 'ASSET_STATUS_CHANGE',
                                  f'Manually updated status of {asset.asset_code} to {new_status.value}',
                                  target_id=asset.id)
            settings = get_settings(self.store)

        logger.info(f"Asset {asset.asset_code} status {old_status.value} -> {new_status.value}")
        if old_status != new_status:
            notifications.send_status_change_email(settings, asset, old_status, new_status)
        return asset

    def decommission(self, actor, asset_id, removal_data, expected_revision=None):
        removal_data = dict(removal_data or {})
        missing = [f for f in REQUIRED_REMOVAL_FIELDS if not str(removal_data.get(f) or '').strip()]
        if missing:
            raise ValidationError(f"Removal data requires: {', '.join(missing)}")
        unknown = set(removal_data) - set(REMOVAL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown removal fields: {', '.join(sorted(unknown))}")
        if 'valueAtRemoval' in removal_data:
            removal_data['valueAtRemoval'] = float(parse_money(removal_data['valueAtRemoval'], 'value at removal'))

        with self.store.unit_of_work():
            asset = self.store.require(Asset, asset_id)
            require(actor, module_for_category(asset.inventory_category), Action.UPDATE)
            self.store.put(asset, expected_revision)
            if asset.is_removed:
                raise InvalidState(f"Asset {asset.asset_code} is already removed")

            if asset.assigned_to is not None:
                removal_data['lastKnownUser'] = asset.assigned_to
                holder = self.store.get(User, asset.assigned_to)
                removal_data['lastKnownUserName'] = holder.name if holder else None
            removal_data['removalTimestamp'] = datetime.utcnow().isoformat()

            asset.clear_assignment()
            asset.status = AssetStatus.REMOVED
            asset.removal_data = removal_data
            self.audit.record_for(actor, 'ASSET_DECOMMISSION', f'Asset decommissioned: {asset.asset_code}',
                                  target_id=asset.id)
        logger.info(f"Asset {asset.asset_code} decommissioned")
        return asset

    # -- shared with workflows ---------------------------------------------

    def unlink(self, asset, destination, note):
        """
        Clear an assignment and record the RETURN. Caller owns the unit of
        work, the permission check and the audit entry.
        """
        history = AssetHistory(asset_id=asset.id, user_id=asset.assigned_to,
                               event_type=HistoryType.RETURN, note=note)
        asset.clear_assignment()
        asset.status = destination
        self.store.put(asset)
        self.store.append(history)
        return history
