"""
OTP endpoints – audio-upload and language-change confirmation codes.
"""

from fastapi import APIRouter, Request

from twiller.dependencies import CurrentUser, ServicesDep
from twiller.errors import ForbiddenError, NotFoundError, UnauthenticatedError
from twiller.models import (
    AudioOtpRequest,
    AudioOtpVerifyRequest,
    LanguageOtpRequest,
    LanguageOtpVerifyRequest,
    OtpSentResponse,
    OtpVerifiedResponse,
    VerificationPurpose,
)
from twiller.rate_limit import AUTH, STRICT, limiter
from twiller.services.otp import VerificationResult, VerificationStatus

router = APIRouter(tags=["otp"])


def _raise_for_result(result: VerificationResult) -> None:
    if result.status is VerificationStatus.NOT_FOUND:
        raise NotFoundError("No pending OTP. Please request a new one.")
    if result.status is VerificationStatus.EXPIRED:
        raise UnauthenticatedError("OTP expired. Please request a new one.")
    if result.status is VerificationStatus.INVALID:
        raise UnauthenticatedError("Invalid OTP")


@router.post(
    "/send-audio-otp",
    response_model=OtpSentResponse,
    operation_id="sendAudioOtp",
    summary="Email a passcode that unlocks audio uploads",
)
@limiter.limit(STRICT)
async def send_audio_otp(
    request: Request, body: AudioOtpRequest, services: ServicesDep
) -> OtpSentResponse:
    """
    The caller proves ownership of *email* with an identity token; the
    token's email claim must match the requested address.
    """
    claims = await services.identity.verify_token(body.id_token)
    if claims["email"] != body.email:
        raise ForbiddenError("Token does not belong to this email")

    outcome = await services.otp.request(body.email, VerificationPurpose.AUDIO_UPLOAD)
    return OtpSentResponse(
        message="OTP sent",
        channel=outcome.channel,
        expires_in_seconds=services.otp.ttl_seconds,
    )


@router.post(
    "/verify-audio-otp",
    response_model=OtpVerifiedResponse,
    operation_id="verifyAudioOtp",
    summary="Verify an audio-upload passcode",
)
@limiter.limit(AUTH)
async def verify_audio_otp(
    request: Request, body: AudioOtpVerifyRequest, services: ServicesDep
) -> OtpVerifiedResponse:
    result = await services.otp.verify(body.email, VerificationPurpose.AUDIO_UPLOAD, body.otp)
    _raise_for_result(result)
    return OtpVerifiedResponse(verified=True)


@router.post(
    "/send-lang-otp",
    response_model=OtpSentResponse,
    operation_id="sendLanguageOtp",
    summary="Send a passcode confirming a language change",
)
@limiter.limit(STRICT)
async def send_language_otp(
    request: Request,
    body: LanguageOtpRequest,
    current_user: CurrentUser,
    services: ServicesDep,
) -> OtpSentResponse:
    """French is confirmed by email; every other language by SMS."""
    outcome = await services.otp.request(
        current_user.email,
        VerificationPurpose.LANGUAGE_CHANGE,
        language=body.language,
    )
    return OtpSentResponse(
        message=f"OTP sent via {outcome.channel}",
        channel=outcome.channel,
        expires_in_seconds=services.otp.ttl_seconds,
    )


@router.post(
    "/verify-lang-otp",
    response_model=OtpVerifiedResponse,
    operation_id="verifyLanguageOtp",
    summary="Verify a language-change passcode and apply the new language",
)
@limiter.limit(AUTH)
async def verify_language_otp(
    request: Request,
    body: LanguageOtpVerifyRequest,
    current_user: CurrentUser,
    services: ServicesDep,
) -> OtpVerifiedResponse:
    result = await services.otp.verify(
        current_user.email, VerificationPurpose.LANGUAGE_CHANGE, body.otp
    )
    _raise_for_result(result)
    return OtpVerifiedResponse(verified=True, language=result.payload["language"])
