"""Entity services: validation and bookkeeping in front of the record store.

Services take plain mappings keyed by the JSON wire names, raise the typed
errors from ``fleet_cms.errors`` and never touch the request or response.
"""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

try:
    from ..cache import ADMIN_PATH, HOME_PATH, revalidate_path
    from ..errors import NotFoundError, StorageError
    from ..models import db
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from cache import ADMIN_PATH, HOME_PATH, revalidate_path
    from errors import NotFoundError, StorageError
    from models import db


def commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception('Database commit failed while trying to %s.', action)
        raise StorageError(f'Unable to {action}.') from exc


def get_or_404(model, item_id, label):
    item = db.session.get(model, item_id) if item_id is not None else None
    if item is None:
        raise NotFoundError(f'{label} not found.')
    return item


def get_or_create_singleton(model, singleton_id, defaults):
    item = db.session.get(model, singleton_id)
    if item is not None:
        return item
    item = model(id=singleton_id, **defaults)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created the row first.
        db.session.rollback()
        item = db.session.get(model, singleton_id)
        if item is None:
            raise StorageError(f'Unable to load {model.__tablename__}.')
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception('Failed to create singleton %s.', model.__tablename__)
        raise StorageError(f'Unable to load {model.__tablename__}.') from exc
    return item


def invalidate_public_pages():
    revalidate_path(ADMIN_PATH, HOME_PATH)
