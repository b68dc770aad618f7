from flask import Blueprint, request
from http import HTTPStatus
import logging

from marketplace.middleware.auth import token_required
from marketplace.models.user import AuthProvider
from marketplace.schemas import validate
from marketplace.schemas.auth import GoogleLoginRequest, LoginRequest, SignupRequest
from marketplace.services.google_auth_service import FederatedAuthError
from marketplace.services.registry import get_services
from marketplace.utils.errors import BusinessRuleError, ConflictError, UnauthorizedError, handle_errors
from marketplace.utils.jwt_utils import issue_token
from marketplace.utils.responses import success_response

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _login_response(user, status_code, message):
    token = issue_token(user)
    get_services().users.update_access_token(user.id, token)
    return success_response(status_code, message, {
        'token': token,
        'user': user.to_json()
    })


@auth_bp.route('/signup', methods=['POST'])
@handle_errors
def signup():
    data = validate(SignupRequest, request.get_json(silent=True))
    users = get_services().users

    if users.find_by_email(data.email):
        raise ConflictError('User already exists with this email.')
    if users.is_username_taken(data.username):
        raise ConflictError('Username is already taken.')

    user = users.create(data.model_dump())
    logger.info(f"User {user.id} signed up")
    return _login_response(user, HTTPStatus.CREATED, 'User created successfully')


@auth_bp.route('/login', methods=['POST'])
@handle_errors
def login():
    data = validate(LoginRequest, request.get_json(silent=True))
    user = get_services().users.find_by_email(data.email)

    if not user:
        raise UnauthorizedError('Invalid credentials')
    if not user.password:
        raise BusinessRuleError(f"This account uses {user.auth_provider} sign-in")
    if not user.verify_password(data.password):
        raise UnauthorizedError('Invalid credentials')

    return _login_response(user, HTTPStatus.OK, 'Logged in successfully')


@auth_bp.route('/google-login', methods=['POST'])
@handle_errors
def google_login():
    data = validate(GoogleLoginRequest, request.get_json(silent=True))
    services = get_services()

    try:
        identity = services.google_auth.verify_id_token(data.id_token)
    except FederatedAuthError as e:
        raise UnauthorizedError('Invalid ID token', {'error': str(e)})

    users = services.users
    user = users.find_by_google_uid(identity['uid'])
    if not user:
        user = users.find_by_email(identity['email'])
        if user:
            user = users.link_google_account(user.id, identity['uid'], user.profile_picture or identity.get('picture'))
        else:
            username = _available_username(users, identity)
            user = users.create({
                'email': identity['email'],
                'username': username,
                'google_uid': identity['uid'],
                'profile_picture': identity.get('picture'),
                'auth_provider': AuthProvider.google.value
            })
            logger.info(f"Created user {user.id} from Google sign-in")

    return _login_response(user, HTTPStatus.OK, 'Google login successful')


def _available_username(users, identity):
    base = (identity.get('name') or identity['email'].split('@')[0]).replace(' ', '_')
    base = ''.join(ch for ch in base if ch.isalnum() or ch in '_-')[:40] or 'user'
    candidate = base
    suffix = 1
    while users.is_username_taken(candidate):
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


@auth_bp.route('/logout', methods=['POST'])
@token_required
@handle_errors
def logout(current_user):
    get_services().users.update_access_token(current_user.id, None)
    logger.info(f"User {current_user.id} logged out")
    return success_response(HTTPStatus.OK, 'Logged out successfully. Token invalidated server-side.')
