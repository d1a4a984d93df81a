"""
Repository over the SQLAlchemy session.

Services read and write entities only through an EntityStore. Every mutating
operation runs inside ``unit_of_work()`` so multi-collection workflows commit
together or not at all.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from byod_asset_manager import db
from byod_asset_manager.errors import AppError, Fatal, InvalidState, NotFound

logger = logging.getLogger(__name__)


class EntityStore:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def get(self, model, entity_id, fresh=False):
        if entity_id is None:
            return None
        if fresh:
            # Re-read current state instead of trusting the identity map
            return self.session.get(model, entity_id, populate_existing=True)
        return self.session.get(model, entity_id)

    def require(self, model, entity_id, fresh=True):
        entity = self.get(model, entity_id, fresh=fresh)
        if entity is None:
            raise NotFound(f"{model.__name__} {entity_id} not found")
        return entity

    def list(self, model, *criteria, order_by=None):
        query = self.session.query(model)
        if criteria:
            query = query.filter(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        return query.all()

    def count(self, model, *criteria):
        query = self.session.query(model)
        if criteria:
            query = query.filter(*criteria)
        return query.count()

    def put(self, entity, expected_revision=None):
        """Stage an entity; optionally compare its revision first."""
        if expected_revision is not None and getattr(entity, 'revision', None) != int(expected_revision):
            raise InvalidState(
                f"{type(entity).__name__} {entity.id} was modified concurrently; refresh and retry",
                payload={'expectedRevision': int(expected_revision), 'currentRevision': entity.revision},
            )
        self.session.add(entity)
        return entity

    def append(self, entity):
        """Stage an insert-only record (history, audit)."""
        self.session.add(entity)
        return entity

    def delete(self, entity):
        self.session.delete(entity)

    def flush(self):
        self.session.flush()

    @contextmanager
    def unit_of_work(self):
        """Commit on success, roll back on any failure."""
        try:
            yield self
            self.session.commit()
        except StaleDataError as e:
            self.session.rollback()
            logger.warning(f"Concurrent modification detected: {e}")
            raise InvalidState("Record was modified concurrently; refresh and retry") from e
        except AppError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Persistence failure, transaction rolled back")
            raise Fatal("Persistence failure; the operation was rolled back") from e
        except Exception:
            self.session.rollback()
            raise
