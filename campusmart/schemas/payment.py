from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from campusmart.models.payment import PaymentType
from campusmart.schemas.base import CamelModel


class PaymentInitiate(CamelModel):
    listing_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    type: PaymentType


class PaymentInitiateResponse(CamelModel):
    payment_url: str
    order_id: str


class PaymentRead(CamelModel):
    order_id: str
    listing_id: str
    user_id: str
    amount: Decimal
    type: str
    status: str
    gateway_stage: str
    created_at: datetime
    updated_at: datetime


# Gateway-shaped, so snake_case on the wire
class PaymentCallback(BaseModel):
    success: bool
    order_id: str


class CallbackAck(BaseModel):
    ok: bool = True
