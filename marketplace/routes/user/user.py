from flask import Blueprint, current_app, request
from http import HTTPStatus
import logging

from marketplace.middleware.auth import role_required, token_required
from marketplace.schemas import validate
from marketplace.schemas.auth import UpdateProfileRequest
from marketplace.schemas.product import PaginationQuery
from marketplace.services.registry import get_services
from marketplace.utils.errors import ConflictError, NotFoundError, ValidationError, handle_errors
from marketplace.utils.responses import success_response
from marketplace.utils.uploads import discard_image, upload_image

logger = logging.getLogger(__name__)

user_bp = Blueprint('user', __name__)


@user_bp.route('/me-profile', methods=['GET'])
@token_required
@handle_errors
def get_profile(current_user):
    return success_response(HTTPStatus.OK, 'Profile retrieved successfully', current_user.to_json())


@user_bp.route('/me-profile', methods=['PUT'])
@token_required
@handle_errors
def update_profile(current_user):
    logger.info(f"Update requested for user ID: {current_user.id}")
    data = validate(UpdateProfileRequest, request.get_json(silent=True))
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError('No input data provided')

    users = get_services().users
    if 'username' in changes and users.is_username_taken(changes['username'], exclude_user_id=current_user.id):
        raise ConflictError('Username is already taken.')

    user = users.update(current_user.id, changes)
    logger.info(f"User {current_user.id} updated successfully")
    return success_response(HTTPStatus.OK, 'Profile updated successfully', user.to_json())


@user_bp.route('/me-profile/picture', methods=['POST'])
@token_required
@handle_errors
def upload_profile_picture(current_user):
    """Upload a profile picture for the current user"""
    if 'profile_picture' not in request.files:
        raise ValidationError('No profile picture provided')

    services = get_services()
    profile_url = upload_image(
        request.files['profile_picture'],
        services.storage,
        current_app.config['UPLOAD_FOLDER'],
        f"profiles/{current_user.id}",
        current_app.config['ALLOWED_IMAGE_EXTENSIONS']
    )
    user = services.users.update(current_user.id, {'profile_picture': profile_url})
    if current_user.profile_picture:
        discard_image(current_user.profile_picture, services.storage)

    logger.info(f"Profile picture uploaded successfully for user ID: {current_user.id}")
    return success_response(HTTPStatus.OK, 'Profile picture uploaded successfully', user.to_json())


@user_bp.route('/me-profile', methods=['DELETE'])
@token_required
@handle_errors
def delete_account(current_user):
    get_services().users.soft_delete(current_user.id)
    logger.info(f"User {current_user.id} deleted their account")
    return success_response(HTTPStatus.OK, 'Account deleted successfully')


@user_bp.route('/users', methods=['GET'])
@role_required('admin')
@handle_errors
def list_users(current_user):
    query = validate(PaginationQuery, request.args.to_dict())
    users, pagination = get_services().users.list_users(query.page, query.limit)
    return success_response(HTTPStatus.OK, 'Users retrieved successfully', {
        'users': [u.to_json() for u in users],
        'pagination': pagination
    })


@user_bp.route('/users/<user_id>', methods=['GET'])
@token_required
@handle_errors
def get_user(current_user, user_id):
    user = get_services().users.find_by_id(user_id)
    if not user:
        raise NotFoundError('User not found')
    return success_response(HTTPStatus.OK, 'User retrieved successfully', user.to_public_json())
