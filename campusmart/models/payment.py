import enum

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text

from campusmart.core.database import Base, utcnow


class PaymentType(str, enum.Enum):
    SALE = "SALE"
    RENTAL = "RENTAL"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class GatewayStage(str, enum.Enum):
    """Progress of the Paymob initiation chain, in order."""

    PENDING = "pending"
    AUTH_DONE = "auth_done"
    ORDER_CREATED = "order_created"
    KEY_ISSUED = "key_issued"
    REDIRECT_READY = "redirect_ready"

    @property
    def rank(self) -> int:
        return list(GatewayStage).index(self)


class Payment(Base):
    __tablename__ = "payments"

    order_id = Column(String(64), primary_key=True)
    listing_id = Column(String(64), ForeignKey("listings.listing_id"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.user_id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(20), nullable=False)

    # pending -> completed | failed, never back
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    gateway_stage = Column(String(20), nullable=False, default=GatewayStage.PENDING.value)
    provider_order_id = Column(String(64), nullable=True)
    payment_key = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
