from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class MarketplaceError(Exception):
    """Base error. `message` is what the client sees; never put internals in it."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal error"

    def __init__(self, detail: str | None = None):
        # detail is for logs only
        super().__init__(detail or self.message)
        self.detail = detail


# --- request / identity ---
class InvalidInput(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid data"


class EmailExists(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email already registered"


class AlreadyVerified(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Account already verified"


class InvalidOtp(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid OTP"


class InvalidCredentials(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


# --- session tokens ---
class Unauthenticated(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class InvalidSignature(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden"


class Expired(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden"


# --- lookups ---
class UserNotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ListingNotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class PaymentNotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


# --- payments ---
class PaymentAlreadySettled(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    message = "Payment already settled"


class InvalidCallbackSignature(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid signature"


class GatewayError(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Payment gateway error"

    def __init__(self, step: str, detail: str | None = None):
        super().__init__(f"{step}: {detail}" if detail else step)
        self.step = step


class GatewayTimeout(GatewayError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    message = "Payment gateway timeout"


# --- storage ---
class DuplicateEmail(Exception):
    """Raised by user repositories; the auth workflow turns it into EmailExists."""


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MarketplaceError)
    async def _marketplace_error(request: Request, exc: MarketplaceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": InvalidInput.message},
        )
