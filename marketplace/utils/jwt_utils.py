import logging

from flask import current_app
from flask_jwt_extended import create_access_token

from marketplace.extensions.extension import jwt
from marketplace.utils.responses import error_response

logger = logging.getLogger(__name__)


def read_key_file(file_path):
    try:
        with open(file_path, 'r') as key_file:
            return key_file.read()
    except Exception as e:
        logger.error(f"Failed to read key file {file_path}: {str(e)}")
        raise


def _uses_key_pair():
    return current_app.config.get('JWT_ALGORITHM', 'HS256').startswith(('RS', 'ES'))


@jwt.encode_key_loader
def get_jwt_encode_key(identity):
    if _uses_key_pair():
        return read_key_file(current_app.config['JWT_PRIVATE_KEY_PATH'])
    return current_app.config['JWT_SECRET_KEY']


@jwt.decode_key_loader
def get_jwt_decode_key(jwt_header, jwt_data):
    if _uses_key_pair():
        return read_key_file(current_app.config['JWT_PUBLIC_KEY_PATH'])
    return current_app.config['JWT_SECRET_KEY']


@jwt.unauthorized_loader
def missing_token_callback(reason):
    return error_response(401, 'Access token required', {'error': reason})


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    return error_response(401, 'Invalid token', {'error': reason})


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    return error_response(401, 'Token expired', {'error': 'Please login again'})


def issue_token(user):
    """Create an access token carrying the user's role and email claims."""
    return create_access_token(
        identity=user.id,
        additional_claims={'role': user.role, 'email': user.email}
    )
