from flask import Blueprint, current_app, request
from http import HTTPStatus
import logging

from marketplace.models.transaction import transaction_id_from_order_id
from marketplace.schemas import validate
from marketplace.schemas.transaction import MidtransNotification
from marketplace.services.registry import get_services
from marketplace.utils.errors import ForbiddenError, NotFoundError, handle_errors
from marketplace.utils.responses import success_response

logger = logging.getLogger(__name__)

webhook_bp = Blueprint('webhooks', __name__)


@webhook_bp.route('/midtrans/notification', methods=['POST'])
@handle_errors
def midtrans_notification():
    """
    Handle Midtrans payment notifications.

    The gateway is authoritative: the reported status overwrites whatever the
    transaction currently holds. Notifications with a bad signature are
    rejected before anything is read or written.
    """
    payload = request.get_json(silent=True) or {}
    notification = validate(MidtransNotification, payload)
    services = get_services()

    if current_app.config.get('MIDTRANS_VERIFY_SIGNATURE', True):
        # Signature covers the values exactly as the gateway sent them
        signed = dict(payload)
        signed['status_code'] = notification.status_code or ''
        signed['gross_amount'] = notification.gross_amount or ''
        if not services.payment_gateway.verify_signature(signed):
            logger.warning(f"Rejected notification for order {notification.order_id}: bad signature")
            raise ForbiddenError('Invalid signature')

    transaction_id = transaction_id_from_order_id(notification.order_id)
    logger.info(f"Notification for {transaction_id}: {notification.transaction_status}")

    updated = services.transactions.apply_gateway_status(
        transaction_id,
        notification.transaction_status,
        services.payment_gateway.extract_payment_fields(payload)
    )
    if updated is None:
        raise NotFoundError('Transaction not found')

    return success_response(HTTPStatus.OK, 'Notification processed', {
        'transaction_id': updated.transaction_id,
        'payment_status': updated.payment_status
    })
