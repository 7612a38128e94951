import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable

from campusmart.core.database import utcnow
from campusmart.models.otp import OtpRecord
from campusmart.repositories.base import OtpRepository

logger = logging.getLogger(__name__)

OTP_DIGITS = 6


def generate_code() -> str:
    # Uniform over 000000-999999
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


class OtpNotifier(ABC):
    """Delivery channel for codes (email/SMS in a real deployment)."""

    @abstractmethod
    def send(self, email: str, code: str) -> None:
        ...


class LoggingOtpNotifier(OtpNotifier):
    """Development channel: writes the code to the application log."""

    def send(self, email: str, code: str) -> None:
        logger.info("OTP for %s: %s", email, code)


class OtpIssuer:
    def __init__(
        self,
        repository: OtpRepository,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[], str] = generate_code,
    ):
        self._repository = repository
        self._ttl = ttl
        self._clock = clock
        self._code_factory = code_factory

    def issue(self, email: str) -> str:
        code = self._code_factory()
        self._repository.put(
            OtpRecord(email=email, code=code, expires_at=self._clock() + self._ttl)
        )
        return code

    def verify(self, email: str, submitted_code: str) -> bool:
        """
        Fails closed: no record, wrong code, or expired all return False.
        A matching code is deleted in the same step, so it works only once.
        """
        code = str(submitted_code or "")
        if len(code) != OTP_DIGITS or not (code.isascii() and code.isdigit()):
            return False
        return self._repository.consume(email, code, self._clock())
