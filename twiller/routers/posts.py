"""
Post endpoints – quota-checked creation, listings and the voice upload path.
"""

from fastapi import APIRouter, Query

from twiller.dependencies import CurrentUser, ServicesDep
from twiller.errors import ConflictError, NotFoundError
from twiller.models import (
    Post,
    PostCreateRequest,
    QuotaSummary,
    VoicePostRequest,
    VoicePostResponse,
    normalize_email,
)

router = APIRouter(tags=["posts"])


@router.post(
    "/post",
    response_model=Post,
    status_code=201,
    operation_id="createPost",
    summary="Publish a post within the plan's 30-day allowance",
)
async def create_post(
    body: PostCreateRequest, current_user: CurrentUser, services: ServicesDep
) -> Post:
    user = await services.db.get_user(current_user.email)
    if user is None:
        raise NotFoundError("User not found", details={"email": current_user.email})

    # Check and insert are separate store calls (no lock).
    decision = await services.quota.evaluate(user)
    if not decision.allowed:
        raise ConflictError(
            "Tweet limit reached for your plan",
            details={"plan": decision.plan, "limit": decision.limit, "used": decision.used},
            status_code=403,
        )

    return await services.db.insert_post(
        user.email,
        created_at=services.clock(),
        post=body.post,
        photo=body.photo,
        audio=body.audio,
        username=body.username,
        name=body.name,
        profile_photo=body.profile_photo,
    )


@router.get(
    "/post",
    response_model=list[Post],
    operation_id="listPosts",
    summary="All posts, newest first",
)
async def list_posts(services: ServicesDep) -> list[Post]:
    return await services.db.list_posts()


@router.get(
    "/userpost",
    response_model=list[Post],
    operation_id="listUserPosts",
    summary="Posts by one author, newest first",
)
async def list_user_posts(
    services: ServicesDep,
    email: str = Query(..., description="Author email"),
) -> list[Post]:
    return await services.db.list_posts_by_author(normalize_email(email))


@router.post(
    "/voice-tweet",
    response_model=VoicePostResponse,
    operation_id="createVoicePost",
    summary="Publish an uploaded voice note",
)
async def create_voice_post(body: VoicePostRequest, services: ServicesDep) -> VoicePostResponse:
    """
    Unauthenticated and not quota-checked; the client gates it behind
    /verify-audio-otp.
    """
    post = await services.db.insert_post(
        body.email,
        created_at=services.clock(),
        post=body.post or "",
        audio=body.audio_url,
        username=body.username,
        name=body.name,
        profile_photo=body.profile_photo,
    )
    return VoicePostResponse(success=True, data=post)


@router.get(
    "/tweet-limit",
    response_model=QuotaSummary,
    operation_id="getTweetLimit",
    summary="Remaining posts in the current 30-day window",
)
async def get_tweet_limit(current_user: CurrentUser, services: ServicesDep) -> QuotaSummary:
    user = await services.db.get_user(current_user.email)
    if user is None:
        raise NotFoundError("User not found", details={"email": current_user.email})
    return await services.quota.remaining(user)
