import os
import re
import secrets
import json
import logging
from flask import Flask, abort, g, has_request_context, jsonify, request, session
from flask_login import LoginManager
from sqlalchemy import text
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

try:
    from .config import Config
    from .errors import ContentError
    from .models import db, User
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ as script root
    from config import Config
    from errors import ContentError
    from models import db, User

login_manager = LoginManager()
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{8,80}$")
_sentry_initialized = False
UNSAFE_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


class JsonLogFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'time': self.formatTime(record, self.datefmt),
        }
        if has_request_context():
            payload.update(
                {
                    'request_id': getattr(g, 'request_id', ''),
                    'method': request.method,
                    'path': request.path,
                    'remote_ip': request.remote_addr,
                }
            )
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(app):
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))
    if not app.config.get('LOG_JSON', True):
        return
    formatter = JsonLogFormatter()
    for handler in app.logger.handlers:
        handler.setFormatter(formatter)


@login_manager.user_loader
def load_user(user_id):
    try:
        parsed_id = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, parsed_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Authentication required.'}), 401


def init_sentry(app):
    global _sentry_initialized
    if _sentry_initialized:
        return

    dsn = (app.config.get('SENTRY_DSN') or '').strip()
    if not dsn:
        return

    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        traces_sample_rate = float(app.config.get('SENTRY_TRACES_SAMPLE_RATE') or 0.0)
        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=traces_sample_rate,
            environment=(app.config.get('SENTRY_ENVIRONMENT') or None),
        )
        _sentry_initialized = True
        app.logger.info('Sentry monitoring enabled.')
    except Exception:
        app.logger.exception('Failed to initialize Sentry monitoring.')


def register_error_handlers(app):
    @app.errorhandler(ContentError)
    def handle_content_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            app.logger.error('%s: %s', type(error).__name__, error.message)
        else:
            app.logger.warning('%s: %s', type(error).__name__, error.message)
        return jsonify({'error': error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code and error.code >= 500:
            db.session.rollback()
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error while processing request.')
        return jsonify({'error': 'Internal server error'}), 500


def _security_headers(app):
    headers = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Cross-Origin-Opener-Policy': 'same-origin',
    }
    if app.config.get('HSTS_ENABLED', True):
        hsts = f"max-age={max(0, int(app.config.get('HSTS_MAX_AGE', 31536000)))}"
        if app.config.get('HSTS_INCLUDE_SUBDOMAINS', True):
            hsts += '; includeSubDomains'
        headers['Strict-Transport-Security'] = hsts
    return headers


def register_request_hooks(app):
    """Request ids, the session CSRF check for admin writes and response headers."""
    static_headers = _security_headers(app)
    upload_prefix = app.config.get('UPLOAD_URL_PREFIX', '/uploads') + '/'

    @app.before_request
    def assign_request_id():
        incoming = (request.headers.get('X-Request-ID') or '').strip()
        g.request_id = incoming if _REQUEST_ID_RE.match(incoming) else secrets.token_hex(16)

    @app.before_request
    def enforce_csrf():
        if request.method not in UNSAFE_METHODS:
            return
        expected = session.get('_csrf_token')
        provided = request.headers.get('X-CSRF-Token') or request.form.get('_csrf_token')
        if not expected or not provided or not secrets.compare_digest(expected, provided):
            abort(400, description='Invalid or missing CSRF token.')

    @app.after_request
    def add_response_headers(response):
        response.headers['X-Request-ID'] = getattr(g, 'request_id', '')
        for name, value in static_headers.items():
            if name == 'Strict-Transport-Security' and not request.is_secure:
                continue
            response.headers.setdefault(name, value)

        if request.path.startswith(upload_prefix) and response.status_code in (200, 304):
            response.headers['Cache-Control'] = 'public, max-age=604800'
        elif request.path.startswith('/api/'):
            response.headers.setdefault('Cache-Control', 'no-store')
        return response


def register_health_checks(app):
    @app.get('/healthz')
    def healthz():
        try:
            db.session.execute(text('SELECT 1'))
        except Exception:
            db.session.rollback()
            app.logger.exception('Health check DB probe failed.')
            return {'status': 'degraded'}, 503
        return {'status': 'ok'}, 200

    @app.get('/readyz')
    def readyz():
        checks = {'database': False, 'admin_user_seeded': False}
        try:
            db.session.execute(text('SELECT 1'))
            checks['database'] = True
            checks['admin_user_seeded'] = db.session.query(User.id).first() is not None
        except Exception:
            db.session.rollback()
            app.logger.exception('Readiness check failed.')
            return {'status': 'degraded', 'checks': checks}, 503
        if all(checks.values()):
            return {'status': 'ready', 'checks': checks}, 200
        return {'status': 'warming', 'checks': checks}, 503


def register_blueprints(app):
    try:
        from .routes.main import main_bp, uploaded_file
        from .routes.admin import admin_bp
    except ImportError:  # pragma: no cover - fallback for script-style execution
        from routes.main import main_bp, uploaded_file
        from routes.admin import admin_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp, url_prefix='/api')
    app.add_url_rule(
        app.config.get('UPLOAD_URL_PREFIX', '/uploads') + '/<path:filename>',
        endpoint='uploaded_file',
        view_func=uploaded_file,
    )


def init_database(app):
    with app.app_context():
        try:
            db.create_all()
        except Exception:
            app.logger.exception('db.create_all() failed, tables may need manual migration.')
        try:
            try:
                from .seed import seed_database
            except ImportError:  # pragma: no cover - fallback for script-style execution
                from seed import seed_database
            seed_database()
        except Exception:
            db.session.rollback()
            app.logger.exception('seed_database() failed, seeding skipped.')


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    configure_logging(app)

    if not app.config.get('SECRET_KEY'):
        import warnings
        app.config['SECRET_KEY'] = secrets.token_urlsafe(32)
        warnings.warn(
            'SECRET_KEY is not set, using a random key. '
            'Sessions will not survive restarts. '
            'Set the SECRET_KEY environment variable for production.',
            stacklevel=2,
        )

    if app.config.get('TRUST_PROXY_HEADERS'):
        # One trusted hop: the platform edge.
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_sentry(app)
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    db.init_app(app)
    login_manager.init_app(app)
    register_error_handlers(app)
    register_request_hooks(app)
    register_health_checks(app)
    register_blueprints(app)
    init_database(app)
    return app
