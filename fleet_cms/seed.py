import os
import secrets

try:
    from .models import db, User
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from models import db, User

ADMIN_USERNAME = 'admin'
ADMIN_EMAIL = 'admin@example.com'


def seed_database():
    """Ensure the admin account exists.

    Stats and site settings are not seeded here; their singleton rows are
    created with defaults on first read.
    """
    env_password = os.environ.get('ADMIN_PASSWORD') or ''

    existing_admin = User.query.filter_by(username=ADMIN_USERNAME).first()
    if existing_admin:
        # Always sync admin password with env var on startup
        if env_password and not existing_admin.check_password(env_password):
            existing_admin.set_password(env_password)
            db.session.commit()
        return existing_admin

    if not env_password:
        env_password = secrets.token_urlsafe(16)
        print(
            '[seed] ADMIN_PASSWORD not set. Seeded admin with a random password. '
            'Set ADMIN_PASSWORD and restart to rotate it to a known value.'
        )
    admin = User(username=ADMIN_USERNAME, email=ADMIN_EMAIL)
    admin.set_password(env_password)
    db.session.add(admin)
    db.session.commit()
    return admin
