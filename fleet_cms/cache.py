"""In-process render cache for public read paths.

Entries are keyed by the page path they feed. Content mutations call
``revalidate_path`` after a successful commit so the next read rebuilds
the payload from the database.
"""
from flask import current_app

try:
    from .utils import utc_now_naive
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from utils import utc_now_naive

ADMIN_PATH = '/admin'
HOME_PATH = '/'


def _cache_store():
    return current_app.extensions.setdefault('page_cache', {})


def get_cached(path):
    entry = _cache_store().get(path)
    if not entry:
        return None
    stored_at, payload = entry
    max_age = int(current_app.config.get('PAGE_CACHE_SECONDS', 0))
    if (utc_now_naive() - stored_at).total_seconds() >= max_age:
        _cache_store().pop(path, None)
        return None
    return payload


def set_cached(path, payload):
    if int(current_app.config.get('PAGE_CACHE_SECONDS', 0)) <= 0:
        return payload
    _cache_store()[path] = (utc_now_naive(), payload)
    return payload


def revalidate_path(*paths):
    store = _cache_store()
    for path in paths:
        store.pop(path, None)
    current_app.logger.info('Revalidated cached paths: %s', ', '.join(paths))
