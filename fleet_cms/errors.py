"""Typed errors raised by the content services.

Route handlers never build error responses themselves; the application
error handlers map these onto JSON bodies and status codes.
"""


class ContentError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ContentError):
    status_code = 400
    default_message = 'Invalid request data.'


class NotFoundError(ContentError):
    status_code = 404
    default_message = 'Resource not found.'


class StorageError(ContentError):
    status_code = 500
    default_message = 'Storage operation failed.'
