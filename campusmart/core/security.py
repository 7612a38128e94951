import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campusmart.core.errors import Expired, InvalidSignature, Unauthenticated, UserNotFound
from campusmart.models.user import User


# ---------------------------
# Password hashing
# ---------------------------
def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# ---------------------------
# Session tokens
# ---------------------------
def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    """
    Stateless HS256 session tokens.

    Payload: sub=user_id, iat, exp=iat+ttl. Nothing is stored server side, so
    validity is signature + expiry only.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _now,
    ):
        if not secret:
            raise ValueError("Session secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock

    def mint(self, user_id: str) -> str:
        issued_at = self._clock()
        payload = {
            "sub": user_id,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
            # iat has one-second resolution; jti keeps tokens minted in the same second distinct
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise Expired(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature(str(exc)) from exc
        return payload["sub"]


# ---------------------------
# FastAPI dependency
# ---------------------------
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    user_id = request.app.state.session_issuer.validate(credentials.credentials)

    user = request.app.state.repositories.users.find_by_id(user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user
