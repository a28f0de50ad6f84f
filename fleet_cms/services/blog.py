import re

import bleach
from flask import current_app
from slugify import slugify

try:
    from . import commit, get_or_404, invalidate_public_pages
    from ..assets import is_managed_url, remove_image, store_image
    from ..errors import NotFoundError, StorageError, ValidationError
    from ..models import BlogPost, db
    from ..utils import clean_text, optional_text, parse_bool, require_text, utc_now_naive
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from services import commit, get_or_404, invalidate_public_pages
    from assets import is_managed_url, remove_image, store_image
    from errors import NotFoundError, StorageError, ValidationError
    from models import BlogPost, db
    from utils import clean_text, optional_text, parse_bool, require_text, utc_now_naive

BLOG_UPLOAD_SUBDIR = 'blog'
SLUG_MAX_LENGTH = 50
CYRILLIC_TRANSLIT = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'е': 'e', 'ё': 'yo', 'ж': 'zh',
    'з': 'z', 'и': 'i', 'й': 'y', 'к': 'k', 'л': 'l', 'м': 'm', 'н': 'n', 'о': 'o',
    'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'у': 'u', 'ф': 'f', 'х': 'h', 'ц': 'ts',
    'ч': 'ch', 'ш': 'sh', 'щ': 'sch', 'ъ': '', 'ы': 'y', 'ь': '', 'э': 'e', 'ю': 'yu', 'я': 'ya',
}
SLUG_REPLACEMENTS = [[source, latin] for source, latin in CYRILLIC_TRANSLIT.items()]
# Punctuation is dropped outright, so "Mercedes-Benz" becomes "mercedesbenz".
SLUG_STRIP_RE = re.compile(r'[^\w\sа-яё]', re.IGNORECASE)
# Only whitespace is left to separate; underscores survive.
SLUG_SEPARATOR_PATTERN = r'[^-a-z0-9_]+'

ALLOWED_RICH_TEXT_TAGS = [
    'p', 'br', 'strong', 'em', 'b', 'i', 'u', 'blockquote', 'code', 'pre',
    'ul', 'ol', 'li', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'a', 'img', 'table', 'thead', 'tbody', 'tr', 'th', 'td', 'hr', 'div', 'span'
]
ALLOWED_RICH_TEXT_ATTRIBUTES = {
    '*': ['class'],
    'a': ['href', 'title', 'target', 'rel'],
    'img': ['src', 'alt', 'title', 'width', 'height'],
}
ALLOWED_RICH_TEXT_PROTOCOLS = ['http', 'https', 'mailto']


def build_slug(title):
    """Transliterate a (possibly Cyrillic) title into a URL slug of at most 50 chars.

    Characters other than letters, digits, underscores and whitespace are
    removed, whitespace runs become single hyphens and Cyrillic letters are
    spelled out with ``CYRILLIC_TRANSLIT``.
    """
    stripped = SLUG_STRIP_RE.sub('', (title or '').lower())
    return slugify(
        stripped,
        replacements=SLUG_REPLACEMENTS,
        regex_pattern=SLUG_SEPARATOR_PATTERN,
        max_length=SLUG_MAX_LENGTH,
    )


def sanitize_html(value, max_length=100000):
    html = (value or '').strip()
    cleaned = bleach.clean(
        html,
        tags=ALLOWED_RICH_TEXT_TAGS,
        attributes=ALLOWED_RICH_TEXT_ATTRIBUTES,
        protocols=ALLOWED_RICH_TEXT_PROTOCOLS,
        strip=True,
    )
    return cleaned[:max_length]


def _require_content(data):
    content = sanitize_html(data.get('content'))
    if not content:
        raise ValidationError('Field "content" is required.')
    return content


def _has_upload(image):
    return image is not None and bool(getattr(image, 'filename', ''))


def _parse_image_url(data, current_url=None):
    """Plain image URLs are free-form, but uploaded files belong to one post."""
    image_url = optional_text(data, 'imageUrl', 500)
    if image_url and is_managed_url(image_url) and image_url != current_url:
        raise ValidationError('Field "imageUrl" cannot reference an upload owned by another post.')
    return image_url


def list_posts():
    return BlogPost.query.order_by(BlogPost.created_at.desc(), BlogPost.id.desc()).all()


def list_published_posts():
    return BlogPost.query.filter_by(is_published=True).order_by(
        BlogPost.published_at.desc(), BlogPost.id.desc()
    ).all()


def list_featured_posts(limit=None):
    if limit is None:
        limit = current_app.config.get('FEATURED_POSTS_LIMIT', 3)
    return BlogPost.query.filter_by(is_published=True).order_by(
        BlogPost.published_at.desc(), BlogPost.id.desc()
    ).limit(limit).all()


def get_post(post_id):
    return get_or_404(BlogPost, post_id, 'Blog post')


def get_published_post_by_slug(slug):
    post = BlogPost.query.filter_by(slug=slug, is_published=True).order_by(BlogPost.id.desc()).first()
    if post is None:
        raise NotFoundError('Blog post not found.')
    return post


def create_post(data, image=None):
    title = require_text(data, 'title', 300)
    content = _require_content(data)
    excerpt = clean_text(data.get('excerpt'), 2000)
    is_published = parse_bool(data.get('isPublished', False), 'isPublished')
    slug = build_slug(title)
    if not slug:
        raise ValidationError('Unable to generate a valid post slug.')

    stored_url = None
    image_url = _parse_image_url(data)
    if _has_upload(image):
        stored_url = image_url = store_image(image, slug, BLOG_UPLOAD_SUBDIR)

    post = BlogPost(
        title=title,
        slug=slug,
        content=content,
        excerpt=excerpt,
        image_url=image_url,
        is_published=is_published,
        published_at=utc_now_naive() if is_published else None,
    )
    db.session.add(post)
    try:
        commit('create blog post')
    except StorageError:
        if stored_url:
            remove_image(stored_url)
        raise
    invalidate_public_pages()
    current_app.logger.info('Created blog post %s (%s).', post.id, post.slug)
    return post


def update_post(post_id, data, image=None):
    """Apply a sparse patch; the slug keeps its creation-time value."""
    post = get_post(post_id)
    changes = {}
    if 'title' in data:
        changes['title'] = require_text(data, 'title', 300)
    if 'content' in data:
        changes['content'] = _require_content(data)
    if 'excerpt' in data:
        changes['excerpt'] = clean_text(data.get('excerpt'), 2000)
    if 'isPublished' in data:
        is_published = parse_bool(data.get('isPublished'), 'isPublished')
        # published_at records the first publication only.
        if is_published and post.published_at is None:
            changes['published_at'] = utc_now_naive()
        changes['is_published'] = is_published
    if 'imageUrl' in data:
        changes['image_url'] = _parse_image_url(data, post.image_url)

    previous_url = post.image_url
    stored_url = None
    if _has_upload(image):
        stored_url = changes['image_url'] = store_image(image, post.slug, BLOG_UPLOAD_SUBDIR)

    for field, value in changes.items():
        setattr(post, field, value)
    try:
        commit('update blog post')
    except StorageError:
        if stored_url:
            remove_image(stored_url)
        raise
    if previous_url and previous_url != post.image_url:
        remove_image(previous_url)
    invalidate_public_pages()
    current_app.logger.info('Updated blog post %s.', post.id)
    return post


def delete_post(post_id):
    post = get_post(post_id)
    image_url = post.image_url
    db.session.delete(post)
    commit('delete blog post')
    if image_url:
        remove_image(image_url)
    invalidate_public_pages()
    current_app.logger.info('Deleted blog post %s.', post_id)
