from flask import Blueprint, request
from http import HTTPStatus
import logging
import time

from marketplace.middleware.auth import role_required, token_required
from marketplace.models.transaction import build_order_id
from marketplace.schemas import validate
from marketplace.schemas.product import PaginationQuery
from marketplace.schemas.transaction import (
    CreateTransactionRequest,
    TransactionListQuery,
    UpdateTransactionStatusRequest,
)
from marketplace.services.midtrans_service import PaymentGatewayError
from marketplace.services.registry import get_services
from marketplace.utils.errors import (
    BusinessRuleError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    handle_errors,
)
from marketplace.utils.responses import success_response

logger = logging.getLogger(__name__)

transactions_bp = Blueprint('transactions', __name__)


def _actor(user):
    return {'id': user.id, 'email': user.email, 'role': user.role}


def _visible_transaction(transaction_id, current_user):
    transaction = get_services().transactions.find_by_id(transaction_id)
    if not transaction:
        raise NotFoundError('Transaction not found')
    if not transaction.can_view(_actor(current_user)):
        raise ForbiddenError('You do not have access to this transaction')
    return transaction


def _line_items(transaction):
    product = transaction.product
    gross_amount = int(round(float(product['total_price'])))
    unit_price = int(round(float(product['price'])))
    quantity = int(product['quantity'])
    # Gateway rejects sessions whose line items do not add up to the gross amount
    if unit_price * quantity != gross_amount:
        unit_price, quantity = gross_amount, 1
    return gross_amount, [{
        'id': product['id'],
        'price': unit_price,
        'quantity': quantity,
        'name': str(product['name'])[:50]
    }]


def open_payment_session(services, transaction):
    """
    Request a gateway session for ``transaction`` and store it on the record.

    Returns the updated transaction; raises ``PaymentGatewayError`` when the
    gateway refuses, leaving the transaction pending without a session.
    """
    order_id = build_order_id(transaction.transaction_id, time.time())
    gross_amount, items = _line_items(transaction)
    session = services.payment_gateway.create_transaction(
        order_id=order_id,
        gross_amount=gross_amount,
        customer_email=transaction.email_buyer,
        item_details=items
    )
    return services.transactions.attach_payment_session(
        transaction.transaction_id, order_id, session['token'], session.get('redirect_url')
    )


def _checkout_payload(transaction):
    session = None
    if transaction.snap_token:
        session = {'snap_token': transaction.snap_token, 'redirect_url': transaction.redirect_url}
    return {
        'transaction': transaction.to_json(),
        'payment_session': session,
        'snap_token': transaction.snap_token,
        'redirect_url': transaction.redirect_url
    }


@transactions_bp.route('/create-transaction', methods=['POST'])
@token_required
@handle_errors
def create_transaction(current_user):
    data = validate(CreateTransactionRequest, request.get_json(silent=True))
    services = get_services()

    product = services.products.find_by_id(data.product_id)
    if not product:
        raise NotFoundError('Product not found')
    if product.user_id == current_user.id:
        raise ForbiddenError('You cannot buy your own product')
    if not product.has_stock_for(data.quantity):
        raise BusinessRuleError('Insufficient stock for the requested quantity')

    seller = services.users.find_by_id(product.user_id)
    if not seller:
        raise NotFoundError('Seller not found')

    # A listing sells once: the whole product is delisted, regardless of quantity.
    # Conditional on the version read above; a concurrent checkout gets 409.
    services.products.soft_delete(product.product_id, expected_version=product.version)
    transaction = services.transactions.create(current_user, seller, product, data.quantity, data.total_price)
    logger.info(f"Transaction {transaction.transaction_id} created by {current_user.id} for product {product.product_id}")

    try:
        transaction = open_payment_session(services, transaction)
    except PaymentGatewayError as e:
        logger.error(f"Payment session for {transaction.transaction_id} failed: {str(e)}")
        raise UpstreamError('Failed to create payment session', {
            'error': str(e),
            'transaction': transaction.to_json()
        })

    return success_response(HTTPStatus.CREATED, 'Transaction created successfully', _checkout_payload(transaction))


@transactions_bp.route('/transaction/<transaction_id>/payment', methods=['POST'])
@token_required
@handle_errors
def retry_payment_session(current_user, transaction_id):
    """Open a payment session for a pending transaction that does not have one"""
    transaction = _visible_transaction(transaction_id, current_user)
    if not transaction.is_buyer(_actor(current_user)):
        raise ForbiddenError('Only the buyer can pay for this transaction')
    if not transaction.is_pending:
        raise BusinessRuleError(f"Cannot pay for a transaction that is {transaction.payment_status}")
    if transaction.snap_token:
        return success_response(HTTPStatus.OK, 'Payment session already exists', _checkout_payload(transaction))

    try:
        transaction = open_payment_session(get_services(), transaction)
    except PaymentGatewayError as e:
        raise UpstreamError('Failed to create payment session', {'error': str(e)})

    return success_response(HTTPStatus.OK, 'Payment session created successfully', _checkout_payload(transaction))


@transactions_bp.route('/my-transactions', methods=['GET'])
@token_required
@handle_errors
def my_transactions(current_user):
    query = validate(TransactionListQuery, request.args.to_dict())
    transactions = get_services().transactions.find_for_user(current_user.id, current_user.email, query.role)
    return success_response(HTTPStatus.OK, 'Transactions retrieved successfully',
                            [t.to_json() for t in transactions])


@transactions_bp.route('/transactions', methods=['GET'])
@role_required('admin')
@handle_errors
def list_transactions(current_user):
    query = validate(PaginationQuery, request.args.to_dict())
    transactions, pagination = get_services().transactions.list_all(
        query.page, query.limit, request.args.get('status')
    )
    return success_response(HTTPStatus.OK, 'Transactions retrieved successfully', {
        'transactions': [t.to_json() for t in transactions],
        'pagination': pagination
    })


@transactions_bp.route('/transaction/<transaction_id>', methods=['GET'])
@token_required
@handle_errors
def get_transaction(current_user, transaction_id):
    transaction = _visible_transaction(transaction_id, current_user)
    return success_response(HTTPStatus.OK, 'Transaction retrieved successfully', transaction.to_json())


@transactions_bp.route('/transaction/<transaction_id>/status', methods=['PUT'])
@token_required
@handle_errors
def update_transaction_status(current_user, transaction_id):
    data = validate(UpdateTransactionStatusRequest, request.get_json(silent=True))
    services = get_services()

    transaction = services.transactions.find_by_id(transaction_id)
    if not transaction:
        raise NotFoundError('Transaction not found')

    updated = services.transactions.update_status(
        transaction, _actor(current_user), data.payment_status, data.payment_description
    )
    return success_response(HTTPStatus.OK, 'Transaction status updated successfully', updated.to_json())


@transactions_bp.route('/transaction/<transaction_id>/payment-status', methods=['GET'])
@token_required
@handle_errors
def sync_payment_status(current_user, transaction_id):
    """Pull the current status from the gateway and reconcile it onto the transaction"""
    transaction = _visible_transaction(transaction_id, current_user)
    if not transaction.midtrans_order_id:
        raise BusinessRuleError('Transaction has no payment session yet')

    services = get_services()
    try:
        status = services.payment_gateway.get_status(transaction.midtrans_order_id)
    except PaymentGatewayError as e:
        raise UpstreamError('Failed to query payment status', {'error': str(e)})

    updated = services.transactions.apply_gateway_status(
        transaction.transaction_id,
        status['transaction_status'],
        services.payment_gateway.extract_payment_fields(status)
    )
    return success_response(HTTPStatus.OK, 'Payment status synchronized', updated.to_json())
