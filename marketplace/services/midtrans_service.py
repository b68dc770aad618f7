import base64
import hashlib
import hmac
import logging

import requests

logger = logging.getLogger(__name__)

SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com/snap/v1"
SNAP_PRODUCTION_URL = "https://app.midtrans.com/snap/v1"
CORE_SANDBOX_URL = "https://api.sandbox.midtrans.com/v2"
CORE_PRODUCTION_URL = "https://api.midtrans.com/v2"


class PaymentGatewayError(Exception):
    def __init__(self, message, status_code=None, response=None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class MidtransService:
    """Thin client for Midtrans Snap (checkout sessions) and the Core status API."""

    def __init__(self, server_key, client_key=None, is_production=False, timeout=10, session=None):
        self.server_key = server_key or ""
        self.client_key = client_key
        self.is_production = is_production
        self.timeout = timeout
        self.snap_url = SNAP_PRODUCTION_URL if is_production else SNAP_SANDBOX_URL
        self.core_url = CORE_PRODUCTION_URL if is_production else CORE_SANDBOX_URL
        self.http = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            server_key=config.get('MIDTRANS_SERVER_KEY'),
            client_key=config.get('MIDTRANS_CLIENT_KEY'),
            is_production=config.get('MIDTRANS_IS_PRODUCTION', False),
            timeout=config.get('MIDTRANS_TIMEOUT', 10),
        )

    def _headers(self):
        auth = base64.b64encode(f"{self.server_key}:".encode()).decode()
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {auth}"
        }

    def create_transaction(self, order_id, gross_amount, customer_email, item_details):
        """
        Open a Snap payment session.

        Returns a dict with ``token`` and ``redirect_url``.
        """
        payload = {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": int(round(float(gross_amount)))
            },
            "customer_details": {
                "email": customer_email
            },
            "item_details": item_details
        }
        try:
            response = self.http.post(f"{self.snap_url}/transactions", json=payload,
                                      headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Midtrans session request for {order_id} failed: {str(e)}")
            raise PaymentGatewayError(f"Payment gateway unreachable: {str(e)}") from e

        data = self._json(response)
        if response.status_code not in (200, 201) or 'token' not in data:
            messages = data.get('error_messages') or [data.get('status_message') or response.text]
            logger.error(f"Midtrans rejected session for {order_id}: {messages}")
            raise PaymentGatewayError(f"Payment gateway error: {'; '.join(str(m) for m in messages)}",
                                      status_code=response.status_code, response=data)

        logger.info(f"Midtrans session created for order {order_id}")
        return {"token": data['token'], "redirect_url": data.get('redirect_url')}

    def get_status(self, order_id):
        """Query the gateway for the current status of ``order_id``."""
        try:
            response = self.http.get(f"{self.core_url}/{order_id}/status",
                                     headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Midtrans status request for {order_id} failed: {str(e)}")
            raise PaymentGatewayError(f"Payment gateway unreachable: {str(e)}") from e

        data = self._json(response)
        if response.status_code != 200 or 'transaction_status' not in data:
            raise PaymentGatewayError(f"Payment gateway error: {data.get('status_message') or response.text}",
                                      status_code=response.status_code, response=data)
        return data

    def compute_signature(self, order_id, status_code, gross_amount):
        raw = f"{order_id}{status_code}{gross_amount}{self.server_key}"
        return hashlib.sha512(raw.encode('utf-8')).hexdigest()

    def verify_signature(self, notification):
        """Check a notification's ``signature_key`` against our server key in constant time."""
        signature = notification.get('signature_key')
        if not signature or not self.server_key:
            return False
        expected = self.compute_signature(
            notification.get('order_id', ''),
            notification.get('status_code', ''),
            notification.get('gross_amount', ''),
        )
        return hmac.compare_digest(expected, str(signature))

    @staticmethod
    def extract_payment_fields(notification):
        """Gateway metadata worth keeping on the transaction record."""
        va_number = None
        va_numbers = notification.get('va_numbers') or []
        if va_numbers and isinstance(va_numbers, list) and isinstance(va_numbers[0], dict):
            va_number = va_numbers[0].get('va_number')
        elif notification.get('permata_va_number'):
            va_number = notification['permata_va_number']

        # The order id is not carried over: a late notification for an earlier
        # session must not repoint the transaction at a stale order
        return {
            'payment_type': notification.get('payment_type'),
            'va_number': va_number,
            'pdf_url': notification.get('pdf_url'),
            'settlement_time': notification.get('settlement_time'),
            'expiry_time': notification.get('expiry_time'),
            'fraud_status': notification.get('fraud_status'),
            'payment_description': notification.get('status_message'),
        }

    @staticmethod
    def _json(response):
        try:
            return response.json()
        except ValueError:
            return {}
