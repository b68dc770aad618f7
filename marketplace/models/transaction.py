from dataclasses import dataclass, field
import enum
import logging
import uuid

from marketplace.extensions.document_store import ConcurrencyError
from marketplace.models.base import BaseModel, Record, utc_now_iso
from marketplace.utils.errors import BusinessRuleError, ForbiddenError

logger = logging.getLogger(__name__)

ORDER_ID_DELIMITER = '-'


class TransactionStatus(enum.Enum):
    pending = 'pending'
    completed = 'completed'
    cancelled = 'cancelled'
    refunded = 'refunded'


def generate_transaction_id():
    return f"TR{uuid.uuid4().hex[:12].upper()}"


def build_order_id(transaction_id, timestamp):
    """Gateway order ids must be unique per session, so each attempt gets a suffix."""
    return f"{transaction_id}{ORDER_ID_DELIMITER}{int(timestamp)}"


def transaction_id_from_order_id(order_id):
    return str(order_id).split(ORDER_ID_DELIMITER, 1)[0]


@dataclass
class Transaction(Record):
    transaction_id: str
    seller: dict
    email_buyer: str
    product: dict
    buyer_id: str = None
    seller_id: str = None
    datetime: str = None
    payment_id: str = None
    payment_status: str = TransactionStatus.pending.value
    payment_description: str = ""
    midtrans_order_id: str = None
    snap_token: str = None
    redirect_url: str = None
    payment_type: str = None
    va_number: str = None
    pdf_url: str = None
    settlement_time: str = None
    expiry_time: str = None
    fraud_status: str = None
    updated_at: str = None
    version: int = field(default=1, compare=False)

    id_field = 'transaction_id'

    @property
    def is_pending(self):
        return self.payment_status == TransactionStatus.pending.value

    def is_buyer(self, actor):
        return bool(actor.get('email')) and actor['email'].lower() == (self.email_buyer or '').lower()

    def is_seller(self, actor):
        return bool(actor.get('id')) and actor['id'] == self.seller_id

    def can_view(self, actor):
        return self.is_buyer(actor) or self.is_seller(actor) or actor.get('role') == 'admin'


def check_status_transition(transaction, actor, new_status):
    """
    Authorize an authenticated status change.

    Buyers may only cancel, sellers may only complete or refund. Cancel and
    complete require a pending transaction; a seller refund is accepted from
    any state.
    """
    is_buyer = transaction.is_buyer(actor)
    is_seller = transaction.is_seller(actor)
    if not (is_buyer or is_seller):
        raise ForbiddenError('You are not a party to this transaction')

    if new_status == TransactionStatus.cancelled.value:
        if not is_buyer:
            raise ForbiddenError('Only the buyer can cancel this transaction')
        if not transaction.is_pending:
            raise BusinessRuleError(f"Cannot cancel a transaction that is {transaction.payment_status}")
    elif new_status == TransactionStatus.completed.value:
        if not is_seller:
            raise ForbiddenError('Only the seller can complete this transaction')
        if not transaction.is_pending:
            raise BusinessRuleError(f"Cannot complete a transaction that is {transaction.payment_status}")
    elif new_status == TransactionStatus.refunded.value:
        if not is_seller:
            raise ForbiddenError('Only the seller can refund this transaction')
    else:
        raise BusinessRuleError(f"Cannot change transaction status to {new_status}")


class TransactionModel(BaseModel):
    collection_name = 'transaction'
    record_class = Transaction
    immutable_fields = ('transaction_id', 'datetime', 'seller', 'seller_id', 'product', 'email_buyer', 'buyer_id', 'payment_id')

    def create(self, buyer, seller, product, quantity, total_price):
        """Persist a pending transaction with denormalized seller and product snapshots."""
        now = utc_now_iso()
        transaction = Transaction(
            transaction_id=generate_transaction_id(),
            seller={
                'id': seller.id,
                'username': seller.username,
                'email': seller.email,
                'phone': seller.phone_number
            },
            seller_id=seller.id,
            email_buyer=buyer.email,
            buyer_id=buyer.id,
            product={
                'id': product.product_id,
                'name': product.name,
                'price': product.price,
                'image': product.image,
                'category': product.category,
                'quantity': quantity,
                'total_price': total_price
            },
            datetime=now,
            payment_id=str(uuid.uuid4()),
            payment_status=TransactionStatus.pending.value,
            updated_at=now,
        )
        return self._insert(transaction)

    def find_for_user(self, user_id, email, role=None):
        """Transactions where the user is buyer (by email) or seller (by id), newest first."""
        results = {}
        if role in (None, 'buyer'):
            for tx in self.find_all_by('email_buyer', email):
                results[tx.transaction_id] = tx
        if role in (None, 'seller'):
            for tx in self.find_all_by('seller_id', user_id):
                results[tx.transaction_id] = tx
        return sorted(results.values(), key=lambda tx: tx.datetime or '', reverse=True)

    def list_all(self, page=1, limit=10, status=None):
        query = self.collection.query()
        if status:
            query = query.where('payment_status', status)
        query = query.order_by('created_at', descending=True)
        return self.paginate(query, page, limit)

    def attach_payment_session(self, transaction_id, order_id, snap_token, redirect_url):
        self.collection.update(transaction_id, {
            'midtrans_order_id': order_id,
            'snap_token': snap_token,
            'redirect_url': redirect_url,
            'updated_at': utc_now_iso()
        })
        return self.find_by_id(transaction_id)

    def update_status(self, transaction, actor, new_status, description=None):
        """
        Apply an authenticated status change.

        The write is conditional on the version that was authorized, so a
        webhook landing in between surfaces as ``ConcurrencyError``.
        """
        check_status_transition(transaction, actor, new_status)
        data = {'payment_status': new_status}
        if description is not None:
            data['payment_description'] = description
        updated = self.update(transaction.transaction_id, data, expected_version=transaction.version)
        logger.info(f"Transaction {transaction.transaction_id} moved from {transaction.payment_status} "
                    f"to {new_status} by {actor.get('id')}")
        return updated

    def apply_gateway_status(self, transaction_id, gateway_status, gateway_fields, max_attempts=3):
        """
        Overwrite ``payment_status`` with the gateway-reported value and merge its metadata.

        No state precondition applies: the gateway is authoritative. Each
        attempt re-reads and commits against the version it read.
        """
        data = {k: v for k, v in gateway_fields.items() if v is not None}
        data['payment_status'] = gateway_status

        for attempt in range(1, max_attempts + 1):
            transaction = self.find_by_id(transaction_id)
            if transaction is None:
                return None
            try:
                updated = self.update(transaction_id, data, expected_version=transaction.version)
                logger.info(f"Transaction {transaction_id} reconciled from {transaction.payment_status} "
                            f"to {gateway_status} (attempt {attempt})")
                return updated
            except ConcurrencyError:
                logger.warning(f"Version conflict reconciling transaction {transaction_id}, attempt {attempt}")
                if attempt == max_attempts:
                    raise
