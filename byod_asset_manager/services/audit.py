import logging

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from byod_asset_manager.errors import Fatal
from byod_asset_manager.models import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 500
SYSTEM_ACTOR = ('sys', 'System')


class AuditLogRecorder:
    """Append-only, size-bounded audit trail."""

    def __init__(self, store, limit=None):
        self.store = store
        self._limit = limit

    @property
    def limit(self):
        if self._limit is not None:
            return self._limit
        if has_app_context():
            return current_app.config.get('AUDIT_LOG_LIMIT', DEFAULT_LIMIT)
        return DEFAULT_LIMIT

    def record(self, action, performed_by, performed_by_name, details, target_id=None):
        """
        Append one entry and evict everything older than the newest ``limit``
        entries. Runs inside the caller's unit of work, so a failed audit write
        rolls back the whole operation.
        """
        entry = AuditLog(
            action=action,
            performed_by=str(performed_by),
            performed_by_name=performed_by_name or 'Unknown',
            target_id=str(target_id) if target_id is not None else None,
            details=details or '',
        )
        try:
            self.store.append(entry)
            self.store.flush()
            self._evict()
        except SQLAlchemyError as e:
            logger.exception(f"Audit write failed for {action}")
            raise Fatal(f"Audit log write failed for {action}") from e
        return entry

    def record_for(self, actor, action, details, target_id=None):
        if actor is None:
            performed_by, name = SYSTEM_ACTOR
        else:
            performed_by, name = actor.id, actor.name
        return self.record(action, performed_by, name, details, target_id=target_id)

    def _evict(self):
        session = self.store.session
        cutoff = (session.query(AuditLog.id)
                  .order_by(AuditLog.id.desc())
                  .offset(self.limit)
                  .limit(1)
                  .scalar())
        if cutoff is not None:
            evicted = (session.query(AuditLog)
                       .filter(AuditLog.id <= cutoff)
                       .delete(synchronize_session='fetch'))
            logger.debug(f"Evicted {evicted} audit entries")

    def recent(self, limit=None, action=None):
        query = self.store.session.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        query = query.order_by(AuditLog.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()
