from flask import Blueprint, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

try:
    from ..errors import ValidationError
    from ..models import User
    from ..services import benefits, blog, reviews, site_settings, vehicles
    from ..utils import clean_text, get_csrf_token
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from errors import ValidationError
    from models import User
    from services import benefits, blog, reviews, site_settings, vehicles
    from utils import clean_text, get_csrf_token

admin_bp = Blueprint('admin', __name__)
AUTH_DUMMY_HASH = generate_password_hash('FleetCms::dummy-auth-check')


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def form_body():
    """Blog writes arrive as multipart form data; JSON is accepted too."""
    if request.is_json:
        return json_body()
    return request.form.to_dict()


def deleted():
    return jsonify({'success': True})


# Auth
@admin_bp.route('/auth/csrf')
def csrf_token():
    return jsonify({'csrfToken': get_csrf_token()})


@admin_bp.route('/auth/login', methods=['POST'])
def login():
    data = json_body()
    username = clean_text(data.get('username'), 80)
    password = data.get('password') or ''
    if not isinstance(password, str):
        password = ''
    user = User.query.filter_by(username=username).first() if username else None
    password_ok = False
    if user:
        password_ok = user.check_password(password)
    else:
        # Keep response timing closer for unknown usernames.
        check_password_hash(AUTH_DUMMY_HASH, password)
    if not user or not password_ok:
        return jsonify({'error': 'Invalid credentials.'}), 401

    session.clear()
    login_user(user)
    return jsonify({'user': user.to_dict(), 'csrfToken': get_csrf_token()})


@admin_bp.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@admin_bp.route('/auth/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})


# Blog
@admin_bp.route('/blog', methods=['GET'])
@login_required
def blog_list():
    return jsonify([post.to_dict() for post in blog.list_posts()])


@admin_bp.route('/blog', methods=['POST'])
@login_required
def blog_create():
    post = blog.create_post(form_body(), request.files.get('image'))
    return jsonify(post.to_dict()), 201


@admin_bp.route('/blog/<int:id>', methods=['GET'])
@login_required
def blog_detail(id):
    return jsonify(blog.get_post(id).to_dict())


@admin_bp.route('/blog/<int:id>', methods=['PUT'])
@login_required
def blog_update(id):
    post = blog.update_post(id, form_body(), request.files.get('image'))
    return jsonify(post.to_dict())


@admin_bp.route('/blog/<int:id>', methods=['DELETE'])
@login_required
def blog_delete(id):
    blog.delete_post(id)
    return deleted()


# Reviews
@admin_bp.route('/reviews', methods=['GET'])
@login_required
def review_list():
    return jsonify([review.to_dict() for review in reviews.list_reviews()])


@admin_bp.route('/reviews', methods=['POST'])
@login_required
def review_create():
    review = reviews.create_review(json_body())
    return jsonify(review.to_dict()), 201


@admin_bp.route('/reviews/<int:id>', methods=['PUT'])
@login_required
def review_update(id):
    review = reviews.update_review(id, json_body())
    return jsonify(review.to_dict())


@admin_bp.route('/reviews/<int:id>', methods=['DELETE'])
@login_required
def review_delete(id):
    reviews.delete_review(id)
    return deleted()


# Vehicles
@admin_bp.route('/vehicles', methods=['GET'])
@login_required
def vehicle_list():
    return jsonify([vehicle.to_dict() for vehicle in vehicles.list_vehicles()])


@admin_bp.route('/vehicles', methods=['POST'])
@login_required
def vehicle_create():
    vehicle = vehicles.create_vehicle(json_body())
    return jsonify(vehicle.to_dict()), 201


@admin_bp.route('/vehicles/<int:id>', methods=['PUT'])
@login_required
def vehicle_update(id):
    vehicle = vehicles.update_vehicle(id, json_body())
    return jsonify(vehicle.to_dict())


@admin_bp.route('/vehicles/<int:id>', methods=['DELETE'])
@login_required
def vehicle_delete(id):
    vehicles.delete_vehicle(id)
    return deleted()


# Benefits
@admin_bp.route('/benefits', methods=['GET'])
@login_required
def benefit_list():
    return jsonify({
        'benefits': [benefit.to_dict() for benefit in benefits.list_benefits()],
        'stats': benefits.get_stats().to_dict(),
    })


@admin_bp.route('/benefits', methods=['POST'])
@login_required
def benefit_create():
    benefit = benefits.create_benefit(json_body())
    return jsonify(benefit.to_dict()), 201


@admin_bp.route('/benefits/<int:id>', methods=['PUT'])
@login_required
def benefit_update(id):
    benefit = benefits.update_benefit(id, json_body())
    return jsonify(benefit.to_dict())


@admin_bp.route('/benefits/<int:id>', methods=['DELETE'])
@login_required
def benefit_delete(id):
    benefits.delete_benefit(id)
    return deleted()


@admin_bp.route('/benefits/swap', methods=['POST'])
@login_required
def benefit_swap():
    data = json_body()
    first, second = benefits.swap_benefit_order(data.get('id'), data.get('otherId'))
    return jsonify([first.to_dict(), second.to_dict()])


@admin_bp.route('/benefits/<int:id>/move', methods=['POST'])
@login_required
def benefit_move(id):
    items = benefits.move_benefit(id, json_body().get('direction'))
    return jsonify([benefit.to_dict() for benefit in items])


@admin_bp.route('/benefits/stats', methods=['GET'])
@login_required
def stats_detail():
    return jsonify(benefits.get_stats().to_dict())


@admin_bp.route('/benefits/stats', methods=['PUT'])
@login_required
def stats_update():
    stats = benefits.update_stats(json_body())
    return jsonify(stats.to_dict())


# Settings
@admin_bp.route('/settings', methods=['GET'])
@login_required
def settings_detail():
    return jsonify(site_settings.get_settings().to_dict())


@admin_bp.route('/settings', methods=['PUT'])
@login_required
def settings_update():
    settings = site_settings.update_settings(json_body())
    return jsonify(settings.to_dict())
