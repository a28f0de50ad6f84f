from flask import current_app

try:
    from . import commit, get_or_404, invalidate_public_pages
    from ..errors import ValidationError
    from ..models import VEHICLE_CLASSES, Vehicle, db, normalize_vehicle_class
    from ..utils import optional_text, parse_bool, parse_required_int, require_fields, require_text
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from services import commit, get_or_404, invalidate_public_pages
    from errors import ValidationError
    from models import VEHICLE_CLASSES, Vehicle, db, normalize_vehicle_class
    from utils import optional_text, parse_bool, parse_required_int, require_fields, require_text

REQUIRED_FIELDS = ('class', 'brand', 'model', 'year', 'seats')


def _parse_class(value):
    vehicle_class = normalize_vehicle_class(value if isinstance(value, str) else None)
    if vehicle_class is None:
        raise ValidationError('Field "class" must be one of: ' + ', '.join(VEHICLE_CLASSES))
    return vehicle_class


def list_vehicles():
    return Vehicle.query.order_by(Vehicle.id.asc()).all()


def list_active_vehicles():
    return Vehicle.query.filter_by(is_active=True).order_by(Vehicle.id.asc()).all()


def get_vehicle(vehicle_id):
    return get_or_404(Vehicle, vehicle_id, 'Vehicle')


def create_vehicle(data):
    require_fields(data, REQUIRED_FIELDS)
    vehicle = Vehicle(
        vehicle_class=_parse_class(data.get('class')),
        brand=require_text(data, 'brand', 120),
        model=require_text(data, 'model', 120),
        year=parse_required_int(data.get('year'), 'year'),
        seats=parse_required_int(data.get('seats'), 'seats'),
        description=optional_text(data, 'description', 5000),
        image_url=optional_text(data, 'imageUrl', 500),
        amenities=optional_text(data, 'amenities', 2000),
        is_active=parse_bool(data['isActive'], 'isActive') if 'isActive' in data else True,
    )
    db.session.add(vehicle)
    commit('create vehicle')
    invalidate_public_pages()
    current_app.logger.info('Created vehicle %s (%s %s).', vehicle.id, vehicle.brand, vehicle.model)
    return vehicle


def update_vehicle(vehicle_id, data):
    vehicle = get_vehicle(vehicle_id)
    changes = {}
    if 'class' in data:
        changes['vehicle_class'] = _parse_class(data.get('class'))
    if 'brand' in data:
        changes['brand'] = require_text(data, 'brand', 120)
    if 'model' in data:
        changes['model'] = require_text(data, 'model', 120)
    if 'year' in data:
        changes['year'] = parse_required_int(data.get('year'), 'year')
    if 'seats' in data:
        changes['seats'] = parse_required_int(data.get('seats'), 'seats')
    if 'description' in data:
        changes['description'] = optional_text(data, 'description', 5000)
    if 'imageUrl' in data:
        changes['image_url'] = optional_text(data, 'imageUrl', 500)
    if 'amenities' in data:
        changes['amenities'] = optional_text(data, 'amenities', 2000)
    if 'isActive' in data:
        changes['is_active'] = parse_bool(data.get('isActive'), 'isActive')

    for field, value in changes.items():
        setattr(vehicle, field, value)
    commit('update vehicle')
    invalidate_public_pages()
    current_app.logger.info('Updated vehicle %s.', vehicle.id)
    return vehicle


def delete_vehicle(vehicle_id):
    vehicle = get_vehicle(vehicle_id)
    db.session.delete(vehicle)
    commit('delete vehicle')
    invalidate_public_pages()
    current_app.logger.info('Deleted vehicle %s.', vehicle_id)
