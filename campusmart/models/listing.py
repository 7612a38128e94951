import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text

from campusmart.core.database import Base, utcnow


class ListingStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    RENTED = "RENTED"


class Listing(Base):
    __tablename__ = "listings"

    listing_id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), ForeignKey("users.user_id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)

    sale_price = Column(Numeric(10, 2), nullable=True)
    is_rentable = Column(Boolean, nullable=False, default=False)
    rental_price_per_day = Column(Numeric(10, 2), nullable=True)

    status = Column(String(20), nullable=False, default=ListingStatus.AVAILABLE.value)

    created_at = Column(DateTime, default=utcnow, nullable=False)
