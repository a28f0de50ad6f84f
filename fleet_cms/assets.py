"""Image storage under the public upload root.

Stored files are named ``{base}-{epoch_millis}.{ext}`` inside a per-entity
subdirectory and referenced by records through a root-relative URL such as
``/uploads/blog/my-post-1700000000000.jpg``.
"""
import os
import time

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

try:
    from .errors import StorageError, ValidationError
except ImportError:  # pragma: no cover - fallback when running from fleet_cms/ cwd
    from errors import StorageError, ValidationError

DEFAULT_EXTENSION = 'jpg'
EXTENSION_MIME_TYPES = {
    'png': {'image/png'},
    'jpg': {'image/jpeg'},
    'jpeg': {'image/jpeg'},
    'gif': {'image/gif'},
    'webp': {'image/webp'},
}


def _upload_root():
    return os.path.abspath(current_app.config['UPLOAD_FOLDER'])


def _url_prefix():
    return current_app.config.get('UPLOAD_URL_PREFIX', '/uploads').rstrip('/')


def file_extension(filename):
    safe_name = secure_filename(filename or '')
    if '.' not in safe_name:
        return DEFAULT_EXTENSION
    extension = safe_name.rsplit('.', 1)[1].lower()
    return extension or DEFAULT_EXTENSION


def resolve_upload_path(relative_path):
    """Map a path relative to the upload root onto disk, refusing traversal."""
    upload_root = _upload_root()
    parts = [part for part in (relative_path or '').replace('\\', '/').split('/') if part]
    if not parts:
        return None
    for part in parts:
        if secure_filename(part) != part:
            return None
    full_path = os.path.abspath(os.path.join(upload_root, *parts))
    try:
        if os.path.commonpath([upload_root, full_path]) != upload_root:
            return None
    except ValueError:
        return None
    return full_path


def validate_image(file):
    if not file or not file.filename:
        return False

    extension = file_extension(file.filename)
    if extension not in current_app.config['ALLOWED_IMAGE_EXTENSIONS']:
        return False

    mime_type = (file.mimetype or '').split(';', 1)[0].lower()
    allowed_mimes = current_app.config.get('ALLOWED_UPLOAD_MIME_TYPES', set())
    if mime_type not in allowed_mimes or mime_type not in EXTENSION_MIME_TYPES.get(extension, set()):
        return False

    max_pixels = max(1, int(current_app.config.get('MAX_UPLOAD_IMAGE_PIXELS', 40_000_000)))
    file.stream.seek(0)
    try:
        with Image.open(file.stream) as image:
            width, height = image.size
            if width < 1 or height < 1 or (width * height) > max_pixels:
                return False
            image.verify()
        return True
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return False
    finally:
        file.stream.seek(0)


def store_image(file, base_name, subdir):
    """Persist an uploaded image and return its public URL."""
    if not validate_image(file):
        raise ValidationError('Invalid image upload.')

    safe_base = secure_filename(base_name or '') or 'image'
    safe_subdir = secure_filename(subdir or '')
    extension = file_extension(file.filename)
    directory = os.path.join(_upload_root(), safe_subdir) if safe_subdir else _upload_root()
    millis = int(time.time() * 1000)
    filename = f"{safe_base}-{millis}.{extension}"
    # Never overwrite a file another record may still reference.
    while os.path.exists(os.path.join(directory, filename)):
        millis += 1
        filename = f"{safe_base}-{millis}.{extension}"
    try:
        os.makedirs(directory, exist_ok=True)
        file.save(os.path.join(directory, filename))
    except OSError as exc:
        current_app.logger.exception('Failed to write upload %s', filename)
        raise StorageError('Failed to save image.') from exc

    relative = f"{safe_subdir}/{filename}" if safe_subdir else filename
    return f"{_url_prefix()}/{relative}"


def is_managed_url(url):
    return bool(url) and url.startswith(_url_prefix() + '/')


def remove_image(url):
    """Delete the file behind a stored URL; absent files and foreign URLs are ignored."""
    if not is_managed_url(url):
        return False
    full_path = resolve_upload_path(url[len(_url_prefix()) + 1:])
    if not full_path or not os.path.exists(full_path):
        return False
    try:
        os.remove(full_path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        current_app.logger.exception('Failed to remove upload %s', url)
        raise StorageError('Failed to remove image.') from exc
    current_app.logger.info('Removed upload %s', url)
    return True
