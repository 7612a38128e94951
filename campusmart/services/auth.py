"""
Registration, OTP verification and login.

Per-user states: UNREGISTERED -> PENDING_VERIFICATION (registered, is_verified
False) -> VERIFIED. Only verified users can log in.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from campusmart.core.database import utcnow
from campusmart.core.errors import (
    AlreadyVerified,
    DuplicateEmail,
    EmailExists,
    InvalidCredentials,
    InvalidInput,
    InvalidOtp,
    UserNotFound,
)
from campusmart.core.security import SessionIssuer, hash_password, verify_password
from campusmart.models.user import User, UserRole
from campusmart.repositories.base import UserRepository
from campusmart.services.otp import OtpIssuer, OtpNotifier

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes (and bcrypt>=5 refuses longer input)
MAX_PASSWORD_BYTES = 72


@dataclass
class AuthResult:
    token: str
    user: User


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def canonical_email(email) -> Optional[str]:
    """
    Same normalization pydantic's EmailStr applies (domain lowercased), so an
    address is stored and looked up in one form. None when it is not an email.
    """
    if _blank(email) or not isinstance(email, str):
        return None
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        return None


class AuthWorkflow:
    def __init__(
        self,
        users: UserRepository,
        otp_issuer: OtpIssuer,
        session_issuer: SessionIssuer,
        notifier: OtpNotifier,
        bcrypt_rounds: int = 12,
    ):
        self.users = users
        self.otp_issuer = otp_issuer
        self.session_issuer = session_issuer
        self.notifier = notifier
        self.bcrypt_rounds = bcrypt_rounds
        # Checked when the email is unknown so every failed login costs one bcrypt round
        self._dummy_hash = hash_password(uuid.uuid4().hex, bcrypt_rounds)

    def register(self, email: str, password: str, full_name: str) -> str:
        if _blank(email) or _blank(password) or _blank(full_name):
            raise InvalidInput("email, password and full name are required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise InvalidInput("password longer than bcrypt accepts")
        email = canonical_email(email)
        if email is None:
            raise InvalidInput("malformed email")

        # Fast path; the repository re-checks atomically on insert
        if self.users.find_by_email(email) is not None:
            raise EmailExists(email)

        user = User(
            user_id=f"user_{uuid.uuid4().hex}",
            email=email,
            password_hash=hash_password(password, self.bcrypt_rounds),
            full_name=full_name.strip(),
            role=UserRole.STUDENT.value,
            is_verified=False,
            rating_average=0.0,
            rating_count=0,
            created_at=utcnow(),
        )
        try:
            self.users.create(user)
        except DuplicateEmail as exc:
            raise EmailExists(email) from exc

        logger.info("Registered %s (%s), pending verification", user.user_id, email)
        self._send_code(email)
        return "OTP sent"

    def verify_otp(self, email: str, code: str) -> AuthResult:
        email = canonical_email(email)
        user = self.users.find_by_email(email) if email is not None else None
        if user is None:
            raise UserNotFound(email)

        if not self.otp_issuer.verify(email, code):
            logger.info("OTP verification failed for %s", email)
            raise InvalidOtp(email)

        self.users.mark_verified(user.user_id)
        user = self.users.find_by_id(user.user_id)
        logger.info("Verified %s", user.user_id)
        return AuthResult(token=self.session_issuer.mint(user.user_id), user=user)

    def resend_otp(self, email: str) -> str:
        email = canonical_email(email)
        user = self.users.find_by_email(email) if email is not None else None
        if user is None:
            raise UserNotFound(email)
        if user.is_verified:
            raise AlreadyVerified(email)

        self._send_code(email)
        return "OTP sent"

    def login(self, email: str, password: str) -> AuthResult:
        # Unknown email, wrong password and unverified account all look the same
        canonical = canonical_email(email)
        user = self.users.find_by_email(canonical) if canonical is not None else None
        password_ok = verify_password(
            password or "", user.password_hash if user is not None else self._dummy_hash
        )
        if user is None or not password_ok or not user.is_verified:
            logger.info("Rejected login for %s", email)
            raise InvalidCredentials(email)

        return AuthResult(token=self.session_issuer.mint(user.user_id), user=user)

    def _send_code(self, email: str) -> None:
        code = self.otp_issuer.issue(email)
        self.notifier.send(email, code)
