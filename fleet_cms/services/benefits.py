"""Benefit highlights and the singleton stats counters shown beside them.

Benefits carry a 1-based rank. New items append after the current maximum,
deletes leave gaps, and reordering always swaps two ranks inside a single
transaction.
"""
from flask import current_app
from sqlalchemy import func

try:
    from . import commit, get_or_404, get_or_create_singleton, invalidate_public_pages
    from ..errors import NotFoundError, ValidationError
    from ..models import BENEFIT_ICONS, DEFAULT_BENEFIT_STATS, SINGLETON_ID, Benefit, BenefitStats, db
    from ..utils import parse_positive_int, require_fields, require_text
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from services import commit, get_or_404, get_or_create_singleton, invalidate_public_pages
    from errors import NotFoundError, ValidationError
    from models import BENEFIT_ICONS, DEFAULT_BENEFIT_STATS, SINGLETON_ID, Benefit, BenefitStats, db
    from utils import parse_positive_int, require_fields, require_text

REQUIRED_FIELDS = ('title', 'description', 'icon')
STATS_FIELDS = ('clients', 'directions', 'experience', 'support')
MOVE_UP = 'up'
MOVE_DOWN = 'down'


def _parse_icon(value):
    icon = (value or '').strip() if isinstance(value, str) else ''
    if icon not in BENEFIT_ICONS:
        raise ValidationError('Field "icon" must be one of: ' + ', '.join(BENEFIT_ICONS))
    return icon


def _parse_id(value, field):
    parsed = parse_positive_int(value)
    if parsed is None:
        raise ValidationError(f'Field "{field}" must be a positive integer.')
    return parsed


def list_benefits():
    return Benefit.query.order_by(Benefit.sort_order.asc(), Benefit.id.asc()).all()


def get_benefit(benefit_id):
    return get_or_404(Benefit, benefit_id, 'Benefit')


def next_order():
    current_max = db.session.query(func.max(Benefit.sort_order)).scalar()
    return (current_max or 0) + 1


def create_benefit(data):
    require_fields(data, REQUIRED_FIELDS)
    benefit = Benefit(
        title=require_text(data, 'title', 200),
        description=require_text(data, 'description', 2000),
        icon=_parse_icon(data.get('icon')),
        sort_order=next_order(),
    )
    db.session.add(benefit)
    commit('create benefit')
    invalidate_public_pages()
    current_app.logger.info('Created benefit %s at position %s.', benefit.id, benefit.sort_order)
    return benefit


def update_benefit(benefit_id, data):
    """Content update only; ranks change through swap_benefit_order."""
    benefit = get_benefit(benefit_id)
    if 'order' in data:
        raise ValidationError('Benefit order is changed with the swap or move operations.')
    changes = {}
    if 'title' in data:
        changes['title'] = require_text(data, 'title', 200)
    if 'description' in data:
        changes['description'] = require_text(data, 'description', 2000)
    if 'icon' in data:
        changes['icon'] = _parse_icon(data.get('icon'))

    for field, value in changes.items():
        setattr(benefit, field, value)
    commit('update benefit')
    invalidate_public_pages()
    current_app.logger.info('Updated benefit %s.', benefit.id)
    return benefit


def swap_benefit_order(first_id, second_id):
    first_id = _parse_id(first_id, 'id')
    second_id = _parse_id(second_id, 'otherId')
    if first_id == second_id:
        raise ValidationError('Cannot swap a benefit with itself.')

    rows = Benefit.query.filter(Benefit.id.in_((first_id, second_id))).with_for_update().all()
    by_id = {row.id: row for row in rows}
    first = by_id.get(first_id)
    second = by_id.get(second_id)
    if first is None or second is None:
        db.session.rollback()
        raise NotFoundError('Benefit not found.')

    first.sort_order, second.sort_order = second.sort_order, first.sort_order
    commit('reorder benefits')
    invalidate_public_pages()
    current_app.logger.info('Swapped order of benefits %s and %s.', first_id, second_id)
    return first, second


def move_benefit(benefit_id, direction):
    """Swap a benefit with its neighbor; moving past either end is a no-op."""
    direction = (direction or '').strip().lower() if isinstance(direction, str) else ''
    if direction not in (MOVE_UP, MOVE_DOWN):
        raise ValidationError('Field "direction" must be "up" or "down".')

    benefit = get_benefit(benefit_id)
    if direction == MOVE_UP:
        neighbor = Benefit.query.filter(Benefit.sort_order < benefit.sort_order).order_by(
            Benefit.sort_order.desc(), Benefit.id.desc()
        ).first()
    else:
        neighbor = Benefit.query.filter(Benefit.sort_order > benefit.sort_order).order_by(
            Benefit.sort_order.asc(), Benefit.id.asc()
        ).first()

    if neighbor is not None:
        swap_benefit_order(benefit.id, neighbor.id)
    return list_benefits()


def delete_benefit(benefit_id):
    benefit = get_benefit(benefit_id)
    db.session.delete(benefit)
    commit('delete benefit')
    invalidate_public_pages()
    current_app.logger.info('Deleted benefit %s.', benefit_id)


def get_stats():
    return get_or_create_singleton(BenefitStats, SINGLETON_ID, DEFAULT_BENEFIT_STATS)


def update_stats(data):
    """Replace all four counters; each one is required."""
    values = {field: require_text(data, field, 40) for field in STATS_FIELDS}
    stats = get_stats()
    for field, value in values.items():
        setattr(stats, field, value)
    commit('update benefit stats')
    invalidate_public_pages()
    current_app.logger.info('Updated benefit stats.')
    return stats
