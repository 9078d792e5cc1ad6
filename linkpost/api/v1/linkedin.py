"""LinkedIn relay: list the member's posts, publish text/image posts, publish stored posts."""

import logging

import httpx
from fastapi import APIRouter, HTTPException, Query, status

from linkpost.core.exceptions import (
    LinkedInAPIError,
    LinkedInScopeError,
    scope_required_exception,
    storage_unavailable_exception,
)
from linkpost.dependencies import LinkedInSession, Store
from linkpost.schemas.linkedin import PublishRequest, PublishResponse, RemotePostsResponse
from linkpost.schemas.post import Post, PostStatus
from linkpost.services.linkedin_service import list_posts, publish_post

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin", tags=["linkedin"])


def _relay_error(e: Exception, fallback: str) -> HTTPException:
    if isinstance(e, LinkedInScopeError):
        return scope_required_exception(e)
    if isinstance(e, LinkedInAPIError):
        code = e.status_code if e.status_code and e.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
        return HTTPException(status_code=code, detail={"error": e.message or fallback})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": str(e) or fallback})


@router.get("/posts", response_model=RemotePostsResponse)
def remote_posts(
    session: LinkedInSession,
    start: int = Query(0, ge=0),
    count: int = Query(20, ge=1),
):
    try:
        return list_posts(session, start=start, count=count)
    except (LinkedInAPIError, httpx.HTTPError) as e:
        logger.error("Fetch posts error: %s", e)
        raise _relay_error(e, "Failed to fetch posts from LinkedIn")


def _publish(session, content: str, image) -> str:
    if not content or not content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "Post content is required"})
    try:
        return publish_post(session, content, image)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})
    except (LinkedInAPIError, httpx.HTTPError) as e:
        logger.error("Publish error: %s", e)
        raise _relay_error(e, "Failed to publish post")


@router.post("/publish", response_model=PublishResponse)
def publish(body: PublishRequest, session: LinkedInSession):
    post_id = _publish(session, body.content, body.image)
    return PublishResponse(success=True, postId=post_id)


@router.post("/publish/{post_id}", response_model=Post)
def publish_stored(post_id: str, session: LinkedInSession, store: Store):
    """Publish a stored draft/scheduled post, then mark it published locally."""
    post = store.get(post_id)
    if post is None and store.last_error is not None:
        raise storage_unavailable_exception()
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.status == PostStatus.PUBLISHED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Post already published")
    _publish(session, post.content, post.image)
    published = store.publish(post_id)
    if published is None:
        # the remote post exists; only the local record could not be updated
        logger.error("Published %s to LinkedIn but could not mark it locally", post_id)
        raise storage_unavailable_exception()
    return published
