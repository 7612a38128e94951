import enum

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from campusmart.core.database import Base, utcnow


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)

    role = Column(String(20), nullable=False, default=UserRole.STUDENT.value)
    is_verified = Column(Boolean, nullable=False, default=False)

    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False)
