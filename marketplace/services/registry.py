from dataclasses import dataclass

from flask import current_app

from marketplace.extensions.document_store import DocumentStore
from marketplace.models.chat import ChatModel
from marketplace.models.product import ProductModel
from marketplace.models.transaction import TransactionModel
from marketplace.models.user import UserModel
from marketplace.services.email_service import EmailService
from marketplace.services.google_auth_service import GoogleAuthService
from marketplace.services.midtrans_service import MidtransService
from marketplace.services.s3_service import S3Service

EXTENSION_KEY = 'marketplace'


@dataclass
class Services:
    """Every collaborator a request needs, built once per process by the app factory."""
    store: DocumentStore
    payment_gateway: MidtransService
    storage: S3Service
    email: EmailService
    google_auth: GoogleAuthService

    def __post_init__(self):
        self.users = UserModel(self.store)
        self.products = ProductModel(self.store)
        self.transactions = TransactionModel(self.store)
        self.chats = ChatModel(self.store)

    @classmethod
    def from_config(cls, config, db):
        return cls(
            store=DocumentStore(db),
            payment_gateway=MidtransService.from_config(config),
            storage=S3Service.from_config(config),
            email=EmailService(config),
            google_auth=GoogleAuthService(client_id=config.get('GOOGLE_CLIENT_ID')),
        )


def get_services():
    return current_app.extensions[EXTENSION_KEY]
