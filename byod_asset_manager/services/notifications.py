import logging

from flask_mail import Message

from byod_asset_manager import mail

logger = logging.getLogger(__name__)


def notify(recipient, subject, fields):
    """
    Best-effort email notification. Failures are logged and swallowed so the
    triggering operation, already committed, is never affected.
    """
    if not recipient:
        logger.info(f"Notification '{subject}' skipped: no recipient")
        return False

    lines = [f"{label}: {value}" for label, value in fields.items()]
    msg = Message(subject, recipients=[recipient])
    msg.body = '\n'.join(lines) + '''

Please log in to the asset management system to view the details.

Thank you,
IT Department
'''
    try:
        mail.send(msg)
    except Exception:
        logger.exception(f"Failed to send notification '{subject}' to {recipient}")
        return False
    logger.info(f"Notification '{subject}' sent to {recipient}")
    return True


def send_assignment_email(settings, asset, employee):
    if not (settings.enable_notifications and settings.notify_on_assignment):
        return False
    return notify(employee.email, 'New Asset Assignment', {
        'Employee': employee.name,
        'Asset': asset.asset_code,
        'Type': asset.asset_type,
        'Spare': 'Yes' if asset.is_spare_assignment else 'No',
        'Expected Return': asset.spare_return_date.isoformat() if asset.spare_return_date else 'Not Defined',
    })


def send_status_change_email(settings, asset, old_status, new_status):
    if not (settings.enable_notifications and settings.notify_on_status_change):
        return False
    return notify(settings.admin_email_for_notifications, f'Asset Status Changed: {asset.asset_code}', {
        'Asset': asset.asset_code,
        'Previous Status': str(old_status),
        'New Status': str(new_status),
    })
