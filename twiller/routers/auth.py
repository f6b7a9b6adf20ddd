"""
Account recovery endpoint.
"""

from fastapi import APIRouter, Request

from twiller.dependencies import ServicesDep
from twiller.models import ForgotPasswordRequest, ForgotPasswordResponse
from twiller.rate_limit import STRICT, limiter

router = APIRouter(tags=["auth"])


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    operation_id="forgotPassword",
    summary="Reset a password by email link or by generating a new one",
)
@limiter.limit(STRICT)
async def forgot_password(
    request: Request, body: ForgotPasswordRequest, services: ServicesDep
) -> ForgotPasswordResponse:
    """
    *identifier* may be the account email or phone number.  *method* is
    ``"email"`` (send a reset link) or ``"generate"`` (return a new password
    once).  Only one reset per 24 hours.
    """
    outcome = await services.recovery.request_reset(body.identifier, body.method)
    return ForgotPasswordResponse(message=outcome.message, password=outcome.password)
