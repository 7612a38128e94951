from fastapi import APIRouter, Depends, status

from campusmart.core.dependencies import get_auth_workflow
from campusmart.schemas.base import MessageResponse
from campusmart.schemas.user import (
    AuthResponse,
    OtpResend,
    OtpVerify,
    UserLogin,
    UserRead,
    UserRegister,
)
from campusmart.services.auth import AuthResult, AuthWorkflow

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    # UserRead has no password_hash field, so it never leaves the server
    return AuthResponse(token=result.token, user=UserRead.model_validate(result.user))


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: UserRegister,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
):
    message = workflow.register(body.email, body.password, body.full_name)
    return MessageResponse(message=message)


@router.post("/verify-otp", response_model=AuthResponse)
def verify_otp(
    body: OtpVerify,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
):
    return _auth_response(workflow.verify_otp(body.email, body.otp))


@router.post("/resend-otp", response_model=MessageResponse)
def resend_otp(
    body: OtpResend,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
):
    return MessageResponse(message=workflow.resend_otp(body.email))


@router.post("/login", response_model=AuthResponse)
def login(
    body: UserLogin,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
):
    return _auth_response(workflow.login(body.email, body.password))
