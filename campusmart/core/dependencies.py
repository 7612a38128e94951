from fastapi import Request

from campusmart.repositories.base import Repositories
from campusmart.services.auth import AuthWorkflow
from campusmart.services.payments import PaymentWorkflow


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def get_auth_workflow(request: Request) -> AuthWorkflow:
    return request.app.state.auth_workflow


def get_payment_workflow(request: Request) -> PaymentWorkflow:
    return request.app.state.payment_workflow
