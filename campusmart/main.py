import logging
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campusmart.core.config import Settings, get_settings
from campusmart.core.errors import register_exception_handlers
from campusmart.core.logging_config import configure_logging
from campusmart.core.security import SessionIssuer
from campusmart.repositories.base import Repositories
from campusmart.repositories.memory import build_memory_repositories
from campusmart.repositories.sql import build_sql_repositories
from campusmart.routers import auth, health, listings, payments
from campusmart.services.auth import AuthWorkflow
from campusmart.services.otp import LoggingOtpNotifier, OtpIssuer, OtpNotifier
from campusmart.services.payments import PaymentWorkflow
from campusmart.services.paymob_client import PaymobClient

logger = logging.getLogger(__name__)


def build_repositories(settings: Settings) -> Repositories:
    if settings.database_url:
        logger.info("Using SQL storage")
        return build_sql_repositories(settings.database_url)
    logger.info("DATABASE_URL not set, using in-memory storage")
    return build_memory_repositories()


def create_app(
    settings: Settings | None = None,
    repositories: Repositories | None = None,
    gateway: PaymobClient | None = None,
    notifier: OtpNotifier | None = None,
    otp_issuer: OtpIssuer | None = None,
) -> FastAPI:
    """
    Wire stores, issuers and workflows onto app.state.

    Every collaborator can be injected; anything left out is built from settings.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    repositories = repositories or build_repositories(settings)
    gateway = gateway or PaymobClient(
        api_key=settings.paymob_api_key,
        integration_id=settings.paymob_integration_id,
        iframe_id=settings.paymob_iframe_id,
        base_url=settings.paymob_base_url,
        currency=settings.paymob_currency,
        timeout=settings.paymob_timeout_seconds,
    )
    session_issuer = SessionIssuer(
        settings.secret_key,
        algorithm=settings.algorithm,
        ttl=timedelta(days=settings.session_ttl_days),
    )
    otp_issuer = otp_issuer or OtpIssuer(
        repositories.otps, ttl=timedelta(minutes=settings.otp_ttl_minutes)
    )

    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.repositories = repositories
    app.state.session_issuer = session_issuer
    app.state.auth_workflow = AuthWorkflow(
        users=repositories.users,
        otp_issuer=otp_issuer,
        session_issuer=session_issuer,
        notifier=notifier or LoggingOtpNotifier(),
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    app.state.payment_workflow = PaymentWorkflow(
        listings=repositories.listings,
        payments=repositories.payments,
        gateway=gateway,
        callback_secret=settings.paymob_hmac_secret,
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(listings.router)
    app.include_router(payments.router)

    @app.get("/")
    def root():
        return {"message": f"{settings.app_name} backend is running"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
