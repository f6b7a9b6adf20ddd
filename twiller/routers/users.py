"""
User registration and profile endpoints.
"""

from fastapi import APIRouter, Query

from twiller.dependencies import ServicesDep
from twiller.errors import ConflictError, InvalidRequestError, NotFoundError
from twiller.models import RegisterRequest, User, UserUpdateRequest, normalize_email

router = APIRouter(tags=["users"])


async def _ensure_username_free(services, username: str | None, email: str) -> None:
    if not username:
        return
    taken = await services.db.get_user_by_username(username)
    if taken is not None and taken.email != email:
        raise ConflictError("Username already taken", details={"username": username})


@router.post(
    "/register",
    response_model=User,
    status_code=201,
    operation_id="register",
    summary="Create a user profile",
)
async def register(body: RegisterRequest, services: ServicesDep) -> User:
    if await services.db.get_user(body.email) is not None:
        raise ConflictError("User already exists", details={"email": body.email})
    await _ensure_username_free(services, body.username, body.email)

    return await services.db.create_user(
        body.email,
        created_at=services.clock(),
        username=body.username,
        name=body.name,
        phone=body.phone,
        profile_photo=body.profile_photo,
    )


@router.get(
    "/loggedinuser",
    response_model=User,
    operation_id="getLoggedInUser",
    summary="Fetch a user by email",
)
async def get_logged_in_user(
    services: ServicesDep,
    email: str | None = Query(None, description="Account email"),
) -> User:
    if not email:
        raise InvalidRequestError("Email required")
    email = normalize_email(email)
    user = await services.db.get_user(email)
    if user is None:
        raise NotFoundError("User not found", details={"email": email})
    return user


@router.get(
    "/user",
    response_model=list[User],
    operation_id="listUsers",
    summary="List all users",
)
async def list_users(services: ServicesDep) -> list[User]:
    return await services.db.list_users()


@router.patch(
    "/userupdate/{email}",
    response_model=User,
    operation_id="updateUser",
    summary="Update profile fields (creates the profile if missing)",
)
async def update_user(email: str, body: UserUpdateRequest, services: ServicesDep) -> User:
    email = normalize_email(email)
    await _ensure_username_free(services, body.username, email)
    fields = body.model_dump(exclude_unset=True)
    return await services.db.update_user(
        email, fields, upsert=True, created_at=services.clock()
    )
