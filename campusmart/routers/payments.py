from typing import Optional

from fastapi import APIRouter, Depends, Query

from campusmart.core.dependencies import get_payment_workflow
from campusmart.core.security import get_current_user
from campusmart.models.user import User
from campusmart.schemas.payment import (
    CallbackAck,
    PaymentCallback,
    PaymentInitiate,
    PaymentInitiateResponse,
    PaymentRead,
)
from campusmart.services.payments import PaymentInitiation, PaymentWorkflow

router = APIRouter(prefix="/api/payment", tags=["payment"])


def _initiation_response(result: PaymentInitiation) -> PaymentInitiateResponse:
    return PaymentInitiateResponse(payment_url=result.payment_url, order_id=result.order_id)


@router.post("/initiate", response_model=PaymentInitiateResponse)
async def initiate_payment(
    body: PaymentInitiate,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    current_user: User = Depends(get_current_user),
):
    result = await workflow.initiate(body.listing_id, body.amount, body.type, current_user)
    return _initiation_response(result)


# Called by Paymob, not by our users: no bearer token, HMAC instead
@router.post("/callback", response_model=CallbackAck)
def payment_callback(
    body: PaymentCallback,
    hmac: Optional[str] = Query(default=None),
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
):
    workflow.handle_callback(body.order_id, body.success, signature=hmac)
    return CallbackAck(ok=True)


@router.post("/{order_id}/resume", response_model=PaymentInitiateResponse)
async def resume_payment(
    order_id: str,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    current_user: User = Depends(get_current_user),
):
    result = await workflow.resume(order_id, current_user)
    return _initiation_response(result)


@router.get("/{order_id}", response_model=PaymentRead)
def get_payment(
    order_id: str,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    current_user: User = Depends(get_current_user),
):
    return PaymentRead.model_validate(workflow.get_payment(order_id, current_user))
