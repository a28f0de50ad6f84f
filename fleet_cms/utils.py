"""Shared utility functions used across services and route modules."""
import re
import secrets
from datetime import datetime, timezone

from flask import session

try:
    from .errors import ValidationError
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TRUE_VALUES = {'1', 'true', 'yes', 'on'}
FALSE_VALUES = {'0', 'false', 'no', 'off', ''}


def utc_now_naive():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_csrf_token():
    token = session.get('_csrf_token')
    if not token:
        token = secrets.token_urlsafe(32)
        session['_csrf_token'] = token
    return token


def isoformat(value):
    return value.isoformat() if value else None


def clean_text(value, max_length=255):
    if value is None:
        return ''
    return str(value).strip()[:max_length]


def is_valid_email(value):
    return bool(EMAIL_RE.match(value or ''))


def is_valid_url(value):
    return not value or value.startswith('https://') or value.startswith('http://')


def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    candidate = str(value if value is not None else '').strip().lower()
    if candidate in TRUE_VALUES:
        return True
    if candidate in FALSE_VALUES:
        return False
    raise ValidationError(f'Field "{field}" must be a boolean.')


def parse_required_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f'Field "{field}" must be an integer.')
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Field "{field}" must be an integer.')


def parse_positive_int(value):
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    if parsed <= 0:
        return None
    return parsed


def require_text(data, field, max_length=255):
    value = clean_text(data.get(field), max_length)
    if not value:
        raise ValidationError(f'Field "{field}" is required.')
    return value


def optional_text(data, field, max_length=255):
    value = clean_text(data.get(field), max_length)
    return value or None


def require_fields(data, fields):
    missing = [field for field in fields if not clean_text(data.get(field), 100000)]
    if missing:
        raise ValidationError('Missing required fields: ' + ', '.join(missing))
