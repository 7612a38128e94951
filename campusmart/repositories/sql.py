from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from campusmart.core.database import create_db_engine, create_session_factory, init_db, utcnow
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


class _SqlRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class SqlUserRepository(_SqlRepository, UserRepository):
    def find_by_email(self, email: str) -> Optional[User]:
        with self._session() as db:
            return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._session() as db:
            return db.get(User, user_id)

    def create(self, user: User) -> User:
        # The unique index on users.email settles races between registrations
        try:
            with self._session() as db:
                db.add(user)
        except IntegrityError as exc:
            raise DuplicateEmail(user.email) from exc
        return user

    def mark_verified(self, user_id: str) -> None:
        with self._session() as db:
            db.execute(update(User).where(User.user_id == user_id).values(is_verified=True))


class SqlOtpRepository(_SqlRepository, OtpRepository):
    def put(self, record: OtpRecord) -> None:
        with self._session() as db:
            db.merge(record)

    def get(self, email: str) -> Optional[OtpRecord]:
        with self._session() as db:
            return db.get(OtpRecord, email)

    def consume(self, email: str, code: str, now: datetime) -> bool:
        with self._session() as db:
            result = db.execute(
                delete(OtpRecord).where(
                    OtpRecord.email == email,
                    OtpRecord.code == code,
                    OtpRecord.expires_at > now,
                )
            )
            return result.rowcount == 1


class SqlListingRepository(_SqlRepository, ListingRepository):
    def add(self, listing: Listing) -> Listing:
        with self._session() as db:
            db.add(listing)
        return listing

    def get(self, listing_id: str) -> Optional[Listing]:
        with self._session() as db:
            return db.get(Listing, listing_id)

    def list_all(self) -> List[Listing]:
        with self._session() as db:
            return list(db.execute(select(Listing).order_by(Listing.created_at)).scalars())


class SqlPaymentRepository(_SqlRepository, PaymentRepository):
    def add(self, payment: Payment) -> Payment:
        with self._session() as db:
            db.add(payment)
        return payment

    def get(self, order_id: str) -> Optional[Payment]:
        with self._session() as db:
            return db.get(Payment, order_id)

    def advance_stage(
        self,
        order_id: str,
        stage: GatewayStage,
        provider_order_id: str | None = None,
        payment_key: str | None = None,
    ) -> Payment:
        values = {"gateway_stage": stage.value, "updated_at": utcnow()}
        if provider_order_id is not None:
            values["provider_order_id"] = provider_order_id
        if payment_key is not None:
            values["payment_key"] = payment_key

        with self._session() as db:
            db.execute(update(Payment).where(Payment.order_id == order_id).values(**values))
            return db.get(Payment, order_id, populate_existing=True)

    def settle(self, order_id: str, status: PaymentStatus) -> tuple[Optional[Payment], bool]:
        with self._session() as db:
            result = db.execute(
                update(Payment)
                .where(
                    Payment.order_id == order_id,
                    Payment.status == PaymentStatus.PENDING.value,
                )
                .values(status=status.value, updated_at=utcnow())
            )
            payment = db.get(Payment, order_id, populate_existing=True)
            return payment, result.rowcount == 1


def build_sql_repositories(database_url: str) -> Repositories:
    engine = create_db_engine(database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    return Repositories(
        users=SqlUserRepository(session_factory),
        otps=SqlOtpRepository(session_factory),
        listings=SqlListingRepository(session_factory),
        payments=SqlPaymentRepository(session_factory),
    )
