"""
BYOD workflow: an employee's personal-device request, its approval and the
matching switch of the employee's provisioning mode.

Request state machine::

    PENDING -> AWAITING_APPROVAL -> ACTIVE | REJECTED
    ACTIVE  -> RETRIEVED_BY_EMPLOYEE | RETRIEVED_BY_ADMIN | INACTIVE_SWITCHED_TO_COMPANY

Approval reclaims every asset the employee holds and flips the employee to PERSONAL
mode inside a single unit of work; a failure at any step leaves nothing
behind.
"""

import logging
from datetime import datetime

from byod_asset_manager.errors import (DuplicateRequest, InvalidState, InvalidTransition, PermissionDenied,
                                       ValidationError)
from byod_asset_manager.models import (Asset, AssetStatus, AssetUsage, ByodEntry, ByodStatus, DeviceType,
                                       EmployeeType, User)
from byod_asset_manager.models.byod import OUTSTANDING_STATUSES
from byod_asset_manager.models.types import coerce_enum
from byod_asset_manager.permissions import Action, Module, can_perform, require
from byod_asset_manager.services.assets import AssetLifecycleController
from byod_asset_manager.services.audit import AuditLogRecorder
from byod_asset_manager.services.settings import get_settings

logger = logging.getLogger(__name__)

REQUIRED_DEVICE_FIELDS = ('brand', 'model', 'serialNumber')
BYOD_RETURN_NOTE = 'Automatic return to Audit Queue due to BYOD Approval.'


class ByodOrchestrator:
    def __init__(self, store):
        self.store = store
        self.audit = AuditLogRecorder(store)
        self.assets = AssetLifecycleController(store)

    # -- reads -------------------------------------------------------------

    def list_entries(self, actor, status=None, user_id=None):
        criteria = []
        if can_perform(actor, Module.BYOD, Action.READ):
            if user_id is not None:
                criteria.append(ByodEntry.user_id == user_id)
        else:
            criteria.append(ByodEntry.user_id == actor.id)
        if status:
            criteria.append(ByodEntry.status == coerce_enum(ByodStatus, status, 'BYOD status'))
        return self.store.list(ByodEntry, *criteria, order_by=ByodEntry.created_at.desc())

    def active_entry(self, user_id):
        entries = self.store.list(ByodEntry, ByodEntry.user_id == user_id, ByodEntry.status == ByodStatus.ACTIVE)
        return entries[0] if entries else None

    # -- employee actions --------------------------------------------------

    def submit_request(self, user, device):
        device = device or {}
        if user is None or not user.is_active_account:
            raise PermissionDenied("Only active accounts can submit BYOD requests")
        if not device.get('agreementAccepted'):
            raise ValidationError("You must accept the BYOD agreement")
        missing = [f for f in REQUIRED_DEVICE_FIELDS if not str(device.get(f) or '').strip()]
        if missing:
            raise ValidationError(f"Device details require: {', '.join(missing)}")
        device_type = coerce_enum(DeviceType, device.get('deviceType') or DeviceType.LAPTOP, 'device type')
        employee_type = coerce_enum(EmployeeType, device.get('employeeType') or EmployeeType.PERMANENT,
                                    'employee type')

        with self.store.unit_of_work():
            user = self.store.require(User, user.id)
            if not get_settings(self.store).allow_raise_byod_request:
                raise PermissionDenied("BYOD requests are currently disabled")
            open_entries = self.store.list(
                ByodEntry, ByodEntry.user_id == user.id,
                ByodEntry.status.in_(OUTSTANDING_STATUSES + (ByodStatus.ACTIVE,)),
            )
            if open_entries:
                raise DuplicateRequest(
                    f"A BYOD request is already {open_entries[0].status.value.lower()} for {user.name}",
                    payload={'entryId': open_entries[0].id},
                )

            entry = ByodEntry(
                user_id=user.id,
                employee_name=user.name,
                employee_type=employee_type,
                department=user.department or 'N/A',
                email=user.email,
                phone=device.get('phone') or user.mobile,
                device_type=device_type,
                brand=device['brand'].strip(),
                model=device['model'].strip(),
                serial_number=device['serialNumber'].strip(),
                os_version=device.get('osVersion'),
                imei_mac=device.get('imeiMac'),
                agreement_accepted=True,
                status=ByodStatus.AWAITING_APPROVAL,
            )
            self.store.append(entry)
            self.store.flush()
            self.audit.record_for(user, 'BYOD_REQUEST_SUBMITTED',
                                  f'Submitted BYOD switch request for {entry.brand} {entry.model}.',
                                  target_id=entry.id)
        logger.info(f"BYOD request {entry.id} submitted by user {user.id}")
        return entry

    def retrieve_by_employee(self, user, entry_id, reason):
        reason = self._reason(reason, 'Retrieval reason')
        with self.store.unit_of_work():
            entry = self.store.require(ByodEntry, entry_id)
            if user is None or entry.user_id != user.id:
                raise PermissionDenied("Only the owner can retrieve this BYOD registration")
            self._move(entry, ByodStatus.RETRIEVED_BY_EMPLOYEE)
            entry.retrieval_reason = reason
            entry.retrieved_at = datetime.utcnow()
            self.audit.record_for(user, 'BYOD_RETRIEVAL_REQUEST', f'Requested BYOD retrieval. Reason: {reason}',
                                  target_id=entry.id)
        logger.info(f"BYOD entry {entry.id} retrieved by employee")
        return entry

    # -- admin actions -----------------------------------------------------

    def approve(self, admin, entry_id, expected_revision=None):
        """
        Activate the entry, return every asset the employee holds to
        PENDING_AUDIT and switch the employee to PERSONAL, all in one commit.
        """
        require(admin, Module.BYOD, Action.WRITE)
        with self.store.unit_of_work():
            entry = self.store.require(ByodEntry, entry_id)
            self.store.put(entry, expected_revision)
            user = self.store.require(User, entry.user_id)
            if not user.is_active_account:
                raise InvalidState(f"{user.name} is not an active account; BYOD cannot be approved")
            held = self.store.list(Asset, Asset.assigned_to == user.id, order_by=Asset.id)
            other_active = self.active_entry(user.id)
            if other_active is not None and other_active.id != entry.id:
                raise InvalidState(f"{user.name} already has an active BYOD registration",
                                   payload={'entryId': other_active.id})

            # 1. activate the entry
            self._move(entry, ByodStatus.ACTIVE)
            entry.approved_at = datetime.utcnow()
            entry.approved_by = admin.id

            # 2. reclaim company hardware
            reclaimed = self._reclaim(held)

            # 3. switch provisioning mode
            self._switch_usage(user, AssetUsage.PERSONAL)

            # 4. audit
            self.audit.record_for(
                admin, 'BYOD_POLICY_APPROVED',
                f'Approved BYOD for {entry.employee_name}. Switched to PERSONAL mode. '
                f'{len(reclaimed)} assets moved to Audit Queue.',
                target_id=entry.id,
            )
        logger.info(f"BYOD entry {entry.id} approved; reclaimed assets {reclaimed}")
        return entry, reclaimed

    def reject(self, admin, entry_id, reason):
        require(admin, Module.BYOD, Action.WRITE)
        reason = self._reason(reason, 'Rejection reason')
        with self.store.unit_of_work():
            entry = self.store.require(ByodEntry, entry_id)
            self._move(entry, ByodStatus.REJECTED)
            entry.rejection_reason = reason
            self.audit.record_for(admin, 'BYOD_REJECTED',
                                  f'Rejected BYOD switch request for {entry.employee_name}. Reason: {reason}',
                                  target_id=entry.id)
        logger.info(f"BYOD entry {entry.id} rejected")
        return entry

    def retrieve_by_admin(self, admin, entry_id, reason):
        require(admin, Module.BYOD, Action.WRITE)
        reason = self._reason(reason, 'Retrieval reason')
        with self.store.unit_of_work():
            entry = self.store.require(ByodEntry, entry_id)
            self._move(entry, ByodStatus.RETRIEVED_BY_ADMIN)
            entry.retrieval_reason = reason
            entry.retrieved_at = datetime.utcnow()
            self.audit.record_for(admin, 'BYOD_ADMIN_OVERRIDE',
                                  f'Administrative retrieval of BYOD for {entry.employee_name}. Reason: {reason}',
                                  target_id=entry.id)
        logger.info(f"BYOD entry {entry.id} retrieved by admin")
        return entry

    def retrieve(self, actor, entry_id, reason):
        """Route a retrieval to the owner or admin path."""
        entry = self.store.require(ByodEntry, entry_id)
        if actor is not None and entry.user_id == actor.id:
            return self.retrieve_by_employee(actor, entry_id, reason)
        return self.retrieve_by_admin(actor, entry_id, reason)

    def switch_to_company(self, admin, user_id, expected_revision=None):
        """
        Put the user back on company hardware. Never needs reclamation; an
        ACTIVE entry becomes INACTIVE_SWITCHED_TO_COMPANY.
        """
        require(admin, Module.EMPLOYEES, Action.UPDATE)
        with self.store.unit_of_work():
            user = self.store.require(User, user_id)
            self.store.put(user, expected_revision)
            previous = user.asset_usage
            entry = self.active_entry(user.id)
            if previous == AssetUsage.COMPANY and entry is None:
                return user
            if not user.is_active_account:
                raise InvalidState(f"{user.name} is not an active account")
            if entry is not None:
                self._move(entry, ByodStatus.INACTIVE_SWITCHED_TO_COMPANY)
                entry.retrieval_reason = 'Admin switched mode to Company Assets'
                entry.retrieved_at = datetime.utcnow()
            self._switch_usage(user, AssetUsage.COMPANY)
            self.audit.record_for(admin, 'ASSET_USAGE_TOGGLE',
                                  f'Switched asset usage for {user.name}: {previous.value} -> {AssetUsage.COMPANY.value}',
                                  target_id=user.id)
        logger.info(f"User {user.id} switched to company assets")
        return user

    # -- helpers -----------------------------------------------------------

    def _move(self, entry, target):
        if not entry.can_move_to(target):
            raise InvalidTransition(f"BYOD entry cannot move from {entry.status.value} to {target.value}")
        entry.status = target
        self.store.put(entry)

    def _reclaim(self, assets):
        reclaimed = []
        for asset in assets:
            if asset.status != AssetStatus.ASSIGNED:
                continue
            self.assets.unlink(asset, AssetStatus.PENDING_AUDIT, note=BYOD_RETURN_NOTE)
            reclaimed.append(asset.id)
        return reclaimed

    def _switch_usage(self, user, mode):
        user.asset_usage = mode
        self.store.put(user)

    @staticmethod
    def _reason(reason, label):
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError(f"{label} is required")
        return reason
