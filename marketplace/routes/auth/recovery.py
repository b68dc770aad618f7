from flask import Blueprint, current_app, request
from datetime import datetime, timezone
from http import HTTPStatus
import logging
import secrets

from marketplace.middleware.auth import token_required
from marketplace.schemas import validate
from marketplace.schemas.auth import ChangePasswordRequest, RequestPasswordResetRequest, ResetPasswordRequest
from marketplace.services.registry import get_services
from marketplace.utils.errors import BusinessRuleError, UnauthorizedError, UpstreamError, handle_errors
from marketplace.utils.responses import success_response

logger = logging.getLogger(__name__)

recovery_bp = Blueprint('recovery', __name__)

RESET_REQUESTED_MESSAGE = 'If an account with that email exists, we have sent a password reset link.'


@recovery_bp.route('/request-password-reset', methods=['POST'])
@handle_errors
def request_password_reset():
    """
    Email a one-hour reset link. The response never reveals whether the
    address belongs to an account.
    """
    data = validate(RequestPasswordResetRequest, request.get_json(silent=True))
    services = get_services()

    user = services.users.find_by_email(data.email)
    if not user:
        return success_response(HTTPStatus.OK, RESET_REQUESTED_MESSAGE)

    reset_token = secrets.token_hex(32)
    expires_at = datetime.now(timezone.utc) + current_app.config['PASSWORD_RESET_EXPIRES']
    services.users.set_reset_password_token(user.id, reset_token, expires_at.isoformat())

    if not services.email.send_reset_password_email(user.email, user.username, reset_token):
        raise UpstreamError('Error sending reset email. Please try again later.')

    logger.info(f"Password reset link sent to user {user.id}")
    return success_response(HTTPStatus.OK, RESET_REQUESTED_MESSAGE)


@recovery_bp.route('/reset-password', methods=['POST'])
@handle_errors
def reset_password():
    data = validate(ResetPasswordRequest, request.get_json(silent=True))
    services = get_services()

    user = services.users.find_by_reset_token(data.token)
    if not user:
        raise BusinessRuleError('Invalid or expired reset token.')

    services.users.update_password(user.id, data.new_password)
    services.email.send_password_reset_confirmation(user.email, user.username)

    logger.info(f"Password reset successful for user {user.id}")
    return success_response(HTTPStatus.OK, 'Password has been reset successfully.')


@recovery_bp.route('/change-password', methods=['POST'])
@token_required
@handle_errors
def change_password(current_user):
    data = validate(ChangePasswordRequest, request.get_json(silent=True))
    services = get_services()

    if not current_user.password:
        raise BusinessRuleError(f"This account uses {current_user.auth_provider} sign-in and has no password")
    if not current_user.verify_password(data.current_password):
        raise UnauthorizedError('Current password is incorrect')
    if current_user.verify_password(data.new_password):
        raise BusinessRuleError('New password must be different from the current password')

    services.users.update_password(current_user.id, data.new_password)
    services.email.send_password_change_confirmation(current_user.email, current_user.username)

    logger.info(f"Password changed for user {current_user.id}")
    return success_response(HTTPStatus.OK, 'Password changed successfully')
