from functools import wraps
import logging

from flask import g, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from marketplace.services.registry import get_services
from marketplace.utils.responses import error_response

logger = logging.getLogger(__name__)


def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    parts = auth_header.split(' ')
    return parts[1] if len(parts) == 2 and parts[0].lower() == 'bearer' else None


def token_required(f):
    """
    Verify the bearer JWT and load the caller.

    The token must also match the one stored on the user, so logout and
    account deletion revoke it. On success ``g.current_user`` holds
    ``{id, email, role}`` and the view receives the loaded user first.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            verify_jwt_in_request()
            user_id = get_jwt_identity()
        except (JWTExtendedException, PyJWTError) as e:
            return error_response(401, 'Invalid token', {'error': str(e)})

        current_user = get_services().users.find_by_id(user_id)
        if not current_user:
            return error_response(401, 'Invalid token: User not found')

        if current_user.access_token != _bearer_token():
            logger.info(f"Rejected revoked token for user {user_id}")
            return error_response(401, 'Token revoked', {'error': 'Please login again'})

        g.current_user = {
            'id': current_user.id,
            'email': current_user.email,
            'role': current_user.role
        }
        return f(current_user, *args, **kwargs)

    return decorated


def role_required(*roles):
    """Restrict a view to users whose role is in ``roles``; implies ``token_required``."""
    def decorator(f):
        @wraps(f)
        def check_role(current_user, *args, **kwargs):
            if current_user.role not in roles:
                return error_response(403, 'Insufficient permissions', {'required_roles': list(roles)})
            return f(current_user, *args, **kwargs)
        return token_required(check_role)
    return decorator
