"""
Payment initiation and settlement.

The pending record is written before Paymob is contacted, so a crash or
gateway failure mid-chain leaves a traceable pending payment. Gateway progress
is tracked on the record:

    pending -> auth_done -> order_created -> key_issued -> redirect_ready

`resume` picks up from the last recorded stage. Auth tokens are short-lived
and never stored, so resuming always starts with a fresh authenticate call.

Repository calls can block on a database, so the async paths run them in the
threadpool.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from fastapi.concurrency import run_in_threadpool

from campusmart.core.database import utcnow
from campusmart.core.errors import (
    GatewayError,
    InvalidCallbackSignature,
    InvalidInput,
    ListingNotFound,
    PaymentAlreadySettled,
    PaymentNotFound,
)
from campusmart.models.payment import GatewayStage, Payment, PaymentStatus, PaymentType
from campusmart.models.user import User
from campusmart.repositories.base import ListingRepository, PaymentRepository
from campusmart.services.paymob_client import PaymobClient, verify_callback

logger = logging.getLogger(__name__)


@dataclass
class PaymentInitiation:
    payment_url: str
    order_id: str


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInput(f"bad amount {amount!r}") from exc
    if not value.is_finite() or value <= 0:
        raise InvalidInput(f"bad amount {amount!r}")
    return value


def _parse_type(payment_type) -> PaymentType:
    try:
        return PaymentType(payment_type)
    except ValueError as exc:
        raise InvalidInput(f"bad payment type {payment_type!r}") from exc


class PaymentWorkflow:
    def __init__(
        self,
        listings: ListingRepository,
        payments: PaymentRepository,
        gateway: PaymobClient,
        callback_secret: str | None = None,
    ):
        self.listings = listings
        self.payments = payments
        self.gateway = gateway
        self.callback_secret = callback_secret

    async def initiate(self, listing_id: str, amount, payment_type, user: User) -> PaymentInitiation:
        value = _parse_amount(amount)
        kind = _parse_type(payment_type)

        if not listing_id or await run_in_threadpool(self.listings.get, listing_id) is None:
            raise ListingNotFound(listing_id)

        now = utcnow()
        payment = await run_in_threadpool(
            self.payments.add,
            Payment(
                order_id=f"order_{uuid.uuid4().hex}",
                listing_id=listing_id,
                user_id=user.user_id,
                amount=value,
                type=kind.value,
                status=PaymentStatus.PENDING.value,
                gateway_stage=GatewayStage.PENDING.value,
                provider_order_id=None,
                payment_key=None,
                created_at=now,
                updated_at=now,
            ),
        )
        logger.info(
            "Payment %s pending: %s %s for listing %s by %s",
            payment.order_id, kind.value, value, listing_id, user.user_id,
        )
        return await self._drive(payment, user)

    async def resume(self, order_id: str, user: User) -> PaymentInitiation:
        payment = await run_in_threadpool(self.get_payment, order_id, user)
        if PaymentStatus(payment.status).is_terminal:
            raise PaymentAlreadySettled(order_id)
        logger.info("Resuming payment %s from stage %s", order_id, payment.gateway_stage)
        return await self._drive(payment, user)

    async def _drive(self, payment: Payment, user: User) -> PaymentInitiation:
        order_id = payment.order_id
        try:
            auth_token = await self.gateway.authenticate()
            payment = await self._advance(payment, GatewayStage.AUTH_DONE)

            if not payment.provider_order_id:
                provider_order = await self.gateway.create_order(auth_token, payment.amount, order_id)
                payment = await self._advance(
                    payment,
                    GatewayStage.ORDER_CREATED,
                    provider_order_id=str(provider_order["id"]),
                )

            payment_key = await self.gateway.issue_payment_key(
                auth_token, payment.provider_order_id, payment.amount, user
            )
            payment = await self._advance(payment, GatewayStage.KEY_ISSUED, payment_key=payment_key)
        except GatewayError as exc:
            # Record stays pending at its last stage for resume/reconciliation
            logger.error("Payment %s stalled at gateway step %s: %s", order_id, exc.step, exc)
            raise

        url = self.gateway.iframe_url(payment_key)
        await self._advance(payment, GatewayStage.REDIRECT_READY)
        logger.info("Payment %s ready for checkout", order_id)
        return PaymentInitiation(payment_url=url, order_id=order_id)

    async def _advance(self, payment: Payment, stage: GatewayStage, **fields) -> Payment:
        # Stages only move forward; a resumed chain keeps the furthest one reached
        current = GatewayStage(payment.gateway_stage)
        if current.rank > stage.rank:
            stage = current
        return await run_in_threadpool(
            self.payments.advance_stage, payment.order_id, stage, **fields
        )

    def handle_callback(self, order_id: str, success: bool, signature: str | None = None) -> Payment:
        if self.callback_secret:
            if not verify_callback(self.callback_secret, order_id or "", success, signature):
                logger.warning("Rejected callback for %s: bad signature", order_id)
                raise InvalidCallbackSignature(order_id)
        else:
            logger.warning(
                "PAYMOB_HMAC_SECRET is not set; accepting unsigned callback for %s", order_id
            )

        target = PaymentStatus.COMPLETED if success else PaymentStatus.FAILED
        payment, applied = self.payments.settle(order_id, target)
        if payment is None:
            raise PaymentNotFound(order_id)

        if applied:
            logger.info("Payment %s %s", order_id, target.value)
        else:
            logger.info(
                "Ignoring duplicate callback for %s (already %s)", order_id, payment.status
            )
        return payment

    def get_payment(self, order_id: str, user: User) -> Payment:
        payment = self.payments.get(order_id)
        # Someone else's order looks exactly like a missing one
        if payment is None or payment.user_id != user.user_id:
            raise PaymentNotFound(order_id)
        return payment
