"""
Post search for the chat assistant widget.
"""

from fastapi import APIRouter, Request

from twiller.dependencies import ServicesDep
from twiller.errors import InvalidRequestError
from twiller.models import PostSearchRequest, PostSearchResponse
from twiller.rate_limit import SEARCH, limiter

router = APIRouter(prefix="/api", tags=["chatbot"])

MAX_RESULTS = 3


@router.post(
    "/chatbot",
    response_model=PostSearchResponse,
    operation_id="searchPosts",
    summary="Find up to three posts mentioning a topic",
)
@limiter.limit(SEARCH)
async def search_posts(
    request: Request, body: PostSearchRequest, services: ServicesDep
) -> PostSearchResponse:
    if not body.query:
        raise InvalidRequestError("Query is required.")

    tweets = await services.db.search_posts(body.query, limit=MAX_RESULTS)
    if not tweets:
        return PostSearchResponse(tweets=[], message="No tweets found for that topic.")
    return PostSearchResponse(tweets=tweets, message="Tweets found!")
