"""
Pytest fixtures for marketplace API tests.

The app runs against in-memory SQLite with fake payment gateway, object
storage, mail and Google identity clients injected through ``Services``.
"""

import os

import pytest

from marketplace import create_app
from marketplace.extensions.document_store import DocumentStore
from marketplace.extensions.extension import db
from marketplace.services.email_service import EmailService
from marketplace.services.google_auth_service import FederatedAuthError, GoogleAuthService
from marketplace.services.midtrans_service import MidtransService, PaymentGatewayError
from marketplace.services.registry import Services
from marketplace.services.s3_service import S3Service
from marketplace.utils.jwt_utils import issue_token

DEFAULT_PASSWORD = "Password1!"
SERVER_KEY = "SB-Mid-server-testing"


class FakePaymentGateway(MidtransService):
    """Records session requests instead of calling Midtrans; signatures use the real algorithm."""

    def __init__(self):
        super().__init__(server_key=SERVER_KEY)
        self.sessions = []
        self.statuses = {}
        self.fail = False

    def create_transaction(self, order_id, gross_amount, customer_email, item_details):
        if self.fail:
            raise PaymentGatewayError("Payment gateway error: service unavailable", status_code=503)
        self.sessions.append({
            'order_id': order_id,
            'gross_amount': gross_amount,
            'customer_email': customer_email,
            'item_details': item_details
        })
        token = f"snap-{order_id}"
        return {'token': token, 'redirect_url': f"https://app.sandbox.midtrans.com/snap/v2/vtweb/{token}"}

    def get_status(self, order_id):
        if order_id not in self.statuses:
            raise PaymentGatewayError("Payment gateway error: Transaction doesn't exist.", status_code=404)
        return self.statuses[order_id]

    def notification(self, order_id, transaction_status, gross_amount="50000.00", status_code="200", **extra):
        payload = {
            'order_id': order_id,
            'transaction_status': transaction_status,
            'status_code': status_code,
            'gross_amount': gross_amount,
            'signature_key': self.compute_signature(order_id, status_code, gross_amount),
        }
        payload.update(extra)
        return payload


class FakeStorage(S3Service):
    def __init__(self):
        super().__init__(bucket_name='test-bucket', region='ap-southeast-1', client=object())
        self.uploads = []
        self.deleted = []

    def upload_path(self, local_path, key):
        assert os.path.exists(local_path)
        self.uploads.append(key)
        return self.public_url(key)

    def delete_file(self, key):
        self.deleted.append(key)


class FakeMailer(EmailService):
    def __init__(self):
        super().__init__({'FRONTEND_URL': 'http://localhost:3000', 'PROJECT_NAME': 'Marketplace'})
        self.sent = []

    def send_email(self, recipient_email, subject, html_body, plain_body=None):
        self.sent.append({'to': recipient_email, 'subject': subject, 'body': html_body})
        return True


class FakeGoogleAuth(GoogleAuthService):
    def __init__(self):
        super().__init__(client_id='test-client-id')
        self.identities = {}

    def verify_id_token(self, id_token):
        if id_token not in self.identities:
            raise FederatedAuthError("Invalid ID token")
        return self.identities[id_token]


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def google_auth():
    return FakeGoogleAuth()


@pytest.fixture
def services(gateway, storage, mailer, google_auth):
    return Services(
        store=DocumentStore(db),
        payment_gateway=gateway,
        storage=storage,
        email=mailer,
        google_auth=google_auth
    )


@pytest.fixture
def app(services, tmp_path):
    """Create application for testing with a fresh in-memory database."""
    app = create_app('testing', services=services)
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app, services):
    """Create a user and a live session token; returns ``(user, headers)``."""
    def _make(username, role='user', password=DEFAULT_PASSWORD, **fields):
        user = services.users.create({
            'email': f"{username}@example.com",
            'username': username,
            'password': password,
            'role': role,
            **fields
        })
        token = issue_token(user)
        services.users.update_access_token(user.id, token)
        return services.users.find_by_id(user.id), auth_headers(token)
    return _make


@pytest.fixture
def seller(make_user):
    return make_user('seller', phone_number='+628123456789')


@pytest.fixture
def buyer(make_user):
    return make_user('buyer')


@pytest.fixture
def admin(make_user):
    return make_user('admin', role='admin')


@pytest.fixture
def listed_product(services, seller):
    """A live product owned by ``seller``."""
    user, _ = seller
    return services.products.create({
        'name': 'Vintage Camera',
        'price': 50000,
        'description': 'Works fine',
        'category': 'electronics',
        'user_id': user.id
    })


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
