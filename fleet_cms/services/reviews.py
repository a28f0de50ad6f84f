from flask import current_app

try:
    from . import commit, get_or_404, invalidate_public_pages
    from ..models import Review, db
    from ..utils import optional_text, parse_bool, parse_required_int, require_fields, require_text
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from services import commit, get_or_404, invalidate_public_pages
    from models import Review, db
    from utils import optional_text, parse_bool, parse_required_int, require_fields, require_text

REQUIRED_FIELDS = ('customerName', 'rating', 'comment')


def list_reviews():
    return Review.query.order_by(Review.id.desc()).all()


def list_published_reviews():
    return Review.query.filter_by(is_published=True).order_by(Review.id.desc()).all()


def get_review(review_id):
    return get_or_404(Review, review_id, 'Review')


def create_review(data):
    require_fields(data, REQUIRED_FIELDS)
    # Ratings are stored as given; the 1-5 range is not enforced.
    review = Review(
        customer_name=require_text(data, 'customerName', 200),
        rating=parse_required_int(data.get('rating'), 'rating'),
        comment=require_text(data, 'comment', 5000),
        image_url=optional_text(data, 'imageUrl', 500),
        is_published=parse_bool(data['isPublished'], 'isPublished') if 'isPublished' in data else True,
    )
    db.session.add(review)
    commit('create review')
    invalidate_public_pages()
    current_app.logger.info('Created review %s.', review.id)
    return review


def update_review(review_id, data):
    review = get_review(review_id)
    changes = {}
    if 'customerName' in data:
        changes['customer_name'] = require_text(data, 'customerName', 200)
    if 'rating' in data:
        changes['rating'] = parse_required_int(data.get('rating'), 'rating')
    if 'comment' in data:
        changes['comment'] = require_text(data, 'comment', 5000)
    if 'imageUrl' in data:
        changes['image_url'] = optional_text(data, 'imageUrl', 500)
    if 'isPublished' in data:
        changes['is_published'] = parse_bool(data.get('isPublished'), 'isPublished')

    for field, value in changes.items():
        setattr(review, field, value)
    commit('update review')
    invalidate_public_pages()
    current_app.logger.info('Updated review %s.', review.id)
    return review


def delete_review(review_id):
    review = get_review(review_id)
    db.session.delete(review)
    commit('delete review')
    invalidate_public_pages()
    current_app.logger.info('Deleted review %s.', review_id)
