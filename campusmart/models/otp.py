from sqlalchemy import Column, DateTime, String

from campusmart.core.database import Base


class OtpRecord(Base):
    __tablename__ = "otp_codes"

    # One active code per email; re-issuing overwrites the row
    email = Column(String(255), primary_key=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
