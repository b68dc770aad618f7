import logging
from functools import wraps
from http import HTTPStatus

from werkzeug.exceptions import HTTPException

from marketplace.extensions.document_store import ConcurrencyError, DocumentStoreError
from marketplace.utils.responses import error_response

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message, data=None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(APIError):
    """Request body or query does not match its schema."""
    status_code = HTTPStatus.BAD_REQUEST


class BusinessRuleError(APIError):
    """Well-formed request that breaks a marketplace rule."""
    status_code = HTTPStatus.BAD_REQUEST


class UnauthorizedError(APIError):
    status_code = HTTPStatus.UNAUTHORIZED


class ForbiddenError(APIError):
    status_code = HTTPStatus.FORBIDDEN


class NotFoundError(APIError):
    status_code = HTTPStatus.NOT_FOUND


class ConflictError(APIError):
    status_code = HTTPStatus.CONFLICT


class UpstreamError(APIError):
    """A dependency (database, object storage, gateway, mail) failed."""
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


def handle_errors(f):
    """Convert everything a view raises into the response envelope."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except APIError as e:
            return error_response(e.status_code, e.message, e.data)
        except ConcurrencyError as e:
            logger.warning(str(e))
            return error_response(HTTPStatus.CONFLICT, 'Resource was modified by another request, please retry')
        except DocumentStoreError as e:
            logger.error(f"Document store failure in {f.__name__}: {str(e)}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, 'Database error', {'error': str(e)})
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unhandled error in {f.__name__}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, 'Internal server error', {'error': str(e)})
    return decorated_function
