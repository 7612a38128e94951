import hmac
import threading
from datetime import datetime
from typing import Dict, List, Optional

from campusmart.core.database import utcnow
from campusmart.core.errors import DuplicateEmail
from campusmart.models.listing import Listing
from campusmart.models.otp import OtpRecord
from campusmart.models.payment import GatewayStage, Payment, PaymentStatus
from campusmart.models.user import User
from campusmart.repositories.base import (
    ListingRepository,
    OtpRepository,
    PaymentRepository,
    Repositories,
    UserRepository,
)


class InMemoryUserRepository(UserRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, User] = {}
        self._id_by_email: Dict[str, str] = {}

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._id_by_email.get(email)
            return self._by_id.get(user_id) if user_id else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._by_id.get(user_id)

    def create(self, user: User) -> User:
        with self._lock:
            if user.email in self._id_by_email:
                raise DuplicateEmail(user.email)
            self._by_id[user.user_id] = user
            self._id_by_email[user.email] = user.user_id
            return user

    def mark_verified(self, user_id: str) -> None:
        with self._lock:
            user = self._by_id.get(user_id)
            if user is not None:
                user.is_verified = True


class InMemoryOtpRepository(OtpRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, OtpRecord] = {}

    def put(self, record: OtpRecord) -> None:
        with self._lock:
            self._records[record.email] = record

    def get(self, email: str) -> Optional[OtpRecord]:
        with self._lock:
            return self._records.get(email)

    def consume(self, email: str, code: str, now: datetime) -> bool:
        with self._lock:
            record = self._records.get(email)
            if record is None or now >= record.expires_at:
                return False
            if not hmac.compare_digest(record.code, code):
                return False
            del self._records[email]
            return True


class InMemoryListingRepository(ListingRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._listings: Dict[str, Listing] = {}

    def add(self, listing: Listing) -> Listing:
        with self._lock:
            self._listings[listing.listing_id] = listing
            return listing

    def get(self, listing_id: str) -> Optional[Listing]:
        with self._lock:
            return self._listings.get(listing_id)

    def list_all(self) -> List[Listing]:
        with self._lock:
            # dicts keep insertion order == creation order
            return list(self._listings.values())


class InMemoryPaymentRepository(PaymentRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._payments: Dict[str, Payment] = {}

    def add(self, payment: Payment) -> Payment:
        with self._lock:
            if payment.order_id in self._payments:
                raise ValueError(f"Duplicate order id {payment.order_id}")
            self._payments[payment.order_id] = payment
            return payment

    def get(self, order_id: str) -> Optional[Payment]:
        with self._lock:
            return self._payments.get(order_id)

    def advance_stage(
        self,
        order_id: str,
        stage: GatewayStage,
        provider_order_id: str | None = None,
        payment_key: str | None = None,
    ) -> Payment:
        with self._lock:
            payment = self._payments[order_id]
            payment.gateway_stage = stage.value
            if provider_order_id is not None:
                payment.provider_order_id = provider_order_id
            if payment_key is not None:
                payment.payment_key = payment_key
            payment.updated_at = utcnow()
            return payment

    def settle(self, order_id: str, status: PaymentStatus) -> tuple[Optional[Payment], bool]:
        with self._lock:
            payment = self._payments.get(order_id)
            if payment is None:
                return None, False
            if payment.status != PaymentStatus.PENDING.value:
                return payment, False
            payment.status = status.value
            payment.updated_at = utcnow()
            return payment, True


def build_memory_repositories() -> Repositories:
    return Repositories(
        users=InMemoryUserRepository(),
        otps=InMemoryOtpRepository(),
        listings=InMemoryListingRepository(),
        payments=InMemoryPaymentRepository(),
    )
