"""WSGI entry point: ``gunicorn fleet_cms.wsgi:app``."""
try:
    from . import create_app
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from __init__ import create_app

app = create_app()
