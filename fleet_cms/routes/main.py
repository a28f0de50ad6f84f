"""Public, read-only endpoints used by the marketing pages."""
import os

from flask import Blueprint, abort, current_app, jsonify, send_from_directory

try:
    from ..assets import resolve_upload_path
    from ..cache import HOME_PATH, get_cached, set_cached
    from ..services import benefits, blog, reviews, site_settings, vehicles
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from assets import resolve_upload_path
    from cache import HOME_PATH, get_cached, set_cached
    from services import benefits, blog, reviews, site_settings, vehicles

main_bp = Blueprint('main', __name__)


def _posts_payload(posts):
    return [post.to_dict() for post in posts]


@main_bp.route('/api/blog/featured')
def featured_posts():
    return jsonify(_posts_payload(blog.list_featured_posts()))


@main_bp.route('/api/blog/published')
def published_posts():
    return jsonify(_posts_payload(blog.list_published_posts()))


@main_bp.route('/api/blog/posts/<slug>')
def published_post(slug):
    return jsonify(blog.get_published_post_by_slug(slug).to_dict())


@main_bp.route('/api/site-settings')
def public_settings():
    return jsonify(site_settings.get_settings().to_dict())


@main_bp.route('/api/home')
def home():
    payload = get_cached(HOME_PATH)
    if payload is None:
        payload = set_cached(HOME_PATH, {
            'vehicles': [vehicle.to_dict() for vehicle in vehicles.list_active_vehicles()],
            'reviews': [review.to_dict() for review in reviews.list_published_reviews()],
            'benefits': [benefit.to_dict() for benefit in benefits.list_benefits()],
            'stats': benefits.get_stats().to_dict(),
            'settings': site_settings.get_settings().to_dict(),
            'blogPosts': _posts_payload(blog.list_featured_posts()),
        })
    return jsonify(payload)


def uploaded_file(filename):
    full_path = resolve_upload_path(filename)
    if not full_path or not os.path.isfile(full_path):
        abort(404)
    extension = full_path.rsplit('.', 1)[1].lower() if '.' in os.path.basename(full_path) else ''
    if extension not in current_app.config['ALLOWED_IMAGE_EXTENSIONS']:
        abort(404)
    return send_from_directory(
        os.path.dirname(full_path),
        os.path.basename(full_path),
        conditional=True,
        etag=True,
    )
