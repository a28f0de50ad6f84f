from flask import current_app

try:
    from . import commit, get_or_create_singleton, invalidate_public_pages
    from ..errors import ValidationError
    from ..models import SINGLETON_ID, SiteSettings
    from ..utils import clean_text, is_valid_email, is_valid_url, require_fields
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from services import commit, get_or_create_singleton, invalidate_public_pages
    from errors import ValidationError
    from models import SINGLETON_ID, SiteSettings
    from utils import clean_text, is_valid_email, is_valid_url, require_fields

REQUIRED_FIELDS = ('phone', 'email', 'companyName')
SOCIAL_FIELDS = ('instagramLink', 'telegramLink', 'whatsappLink')
# wire name -> (column, max length)
SETTINGS_FIELDS = {
    'phone': ('phone', 80),
    'email': ('email', 200),
    'address': ('address', 400),
    'workingHours': ('working_hours', 200),
    'companyName': ('company_name', 200),
    'companyDesc': ('company_desc', 5000),
    'instagramLink': ('instagram_link', 300),
    'telegramLink': ('telegram_link', 300),
    'whatsappLink': ('whatsapp_link', 300),
}


def get_settings():
    return get_or_create_singleton(SiteSettings, SINGLETON_ID, {})


def update_settings(data):
    """Replace the whole settings record; absent optional fields become empty."""
    require_fields(data, REQUIRED_FIELDS)
    values = {
        wire_name: clean_text(data.get(wire_name), max_length)
        for wire_name, (_, max_length) in SETTINGS_FIELDS.items()
    }
    if not is_valid_email(values['email']):
        raise ValidationError('Please provide a valid email address.')
    for social_field in SOCIAL_FIELDS:
        if not is_valid_url(values[social_field]):
            raise ValidationError(f'Field "{social_field}" must start with http:// or https://.')

    settings = get_settings()
    for wire_name, (column, _) in SETTINGS_FIELDS.items():
        setattr(settings, column, values[wire_name])
    commit('save site settings')
    invalidate_public_pages()
    current_app.logger.info('Site settings saved.')
    return settings
