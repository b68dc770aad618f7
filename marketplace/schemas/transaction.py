from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateTransactionRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    total_price: float = Field(..., ge=0)


class UpdateTransactionStatusRequest(BaseModel):
    payment_status: Literal['pending', 'completed', 'cancelled', 'refunded']
    payment_description: Optional[str] = None


class TransactionListQuery(BaseModel):
    role: Optional[Literal['buyer', 'seller']] = None


class MidtransNotification(BaseModel):
    """Payment notification pushed by Midtrans; unknown keys are kept."""
    model_config = ConfigDict(extra='allow')

    order_id: str = Field(..., min_length=1)
    transaction_status: str = Field(..., min_length=1)
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None
    payment_type: Optional[str] = None
    fraud_status: Optional[str] = None

    @field_validator('status_code', 'gross_amount', mode='before')
    @classmethod
    def as_text(cls, v):
        return None if v is None else str(v)
