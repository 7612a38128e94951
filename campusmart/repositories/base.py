"""
Storage interfaces used by the workflows.

Two implementations live next to this module: `memory` (lock-guarded dicts,
the default) and `sql` (SQLAlchemy, used when DATABASE_URL is set). Every
mutating method is atomic with respect to the others on the same repository.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from campusmart.models.listing import Listing
from campusmart.models.otp import OtpRecord
from campusmart.models.payment import GatewayStage, Payment, PaymentStatus
from campusmart.models.user import User


class UserRepository(ABC):
    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def create(self, user: User) -> User:
        """Insert, or raise DuplicateEmail if the email is taken."""

    @abstractmethod
    def mark_verified(self, user_id: str) -> None: ...


class OtpRepository(ABC):
    @abstractmethod
    def put(self, record: OtpRecord) -> None:
        """Store the record, replacing any existing one for the same email."""

    @abstractmethod
    def get(self, email: str) -> Optional[OtpRecord]: ...

    @abstractmethod
    def consume(self, email: str, code: str, now: datetime) -> bool:
        """
        Delete the record iff it matches `code` and has not expired at `now`.
        Returns True when a record was consumed.
        """


class ListingRepository(ABC):
    @abstractmethod
    def add(self, listing: Listing) -> Listing: ...

    @abstractmethod
    def get(self, listing_id: str) -> Optional[Listing]: ...

    @abstractmethod
    def list_all(self) -> List[Listing]: ...


class PaymentRepository(ABC):
    @abstractmethod
    def add(self, payment: Payment) -> Payment: ...

    @abstractmethod
    def get(self, order_id: str) -> Optional[Payment]: ...

    @abstractmethod
    def advance_stage(
        self,
        order_id: str,
        stage: GatewayStage,
        provider_order_id: str | None = None,
        payment_key: str | None = None,
    ) -> Payment:
        """Record gateway progress. Only touches non-None fields."""

    @abstractmethod
    def settle(self, order_id: str, status: PaymentStatus) -> tuple[Optional[Payment], bool]:
        """
        Compare-and-set status from pending to `status`.

        Returns (payment, applied). payment is None when the order id is
        unknown; applied is False when the record was already terminal.
        """


@dataclass
class Repositories:
    users: UserRepository
    otps: OtpRepository
    listings: ListingRepository
    payments: PaymentRepository
