"""Composer API over the local post store, plus live content scoring."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from linkpost.core.exceptions import storage_unavailable_exception
from linkpost.dependencies import Store
from linkpost.schemas.post import (
    DraftCreateRequest,
    Post,
    PostStatsResponse,
    PostStatus,
    PostUpdateRequest,
    PostView,
    ScheduledCreateRequest,
    ScheduleFields,
    ScheduleRequest,
    ScoreRequest,
    ScoreResponse,
)
from linkpost.services.content_score import score_post
from linkpost.services.post_store import PostStore
from linkpost.services.schedule_utils import (
    format_schedule_display,
    is_past,
    parse_date_time,
    parse_timestamp,
    relative_time,
    to_iso,
)

router = APIRouter(tags=["posts"])


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _resolve_schedule(body: ScheduleFields) -> str:
    """Composer-side guard: a new schedule must parse and be in the future."""
    value = body.scheduledTime
    if not value and (body.date or body.time):
        value = parse_date_time(body.date, body.time, body.timezone)
        if not value:
            raise _bad_request("Invalid date or time")
    if not value:
        raise _bad_request("scheduledTime (or date and time) is required")
    ts = parse_timestamp(value)
    if ts is None:
        raise _bad_request("Invalid scheduledTime")
    if ts <= datetime.now(timezone.utc):
        raise _bad_request("scheduledTime must be in the future")
    return to_iso(ts)


def _found(post: Optional[Post], store: PostStore) -> Post:
    if post is None:
        if store.last_error is not None:
            raise storage_unavailable_exception()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _created(post: Optional[Post]) -> Post:
    if post is None:
        raise storage_unavailable_exception()
    return post


def _view(post: Post, now: datetime, tz_name: str) -> PostView:
    view = PostView(**post.model_dump())
    if post.scheduledTime and post.status == PostStatus.SCHEDULED:
        view.scheduleDisplay = format_schedule_display(post.scheduledTime, now, tz_name)
        view.relativeTime = relative_time(post.scheduledTime, now)
        view.pastDue = is_past(post.scheduledTime, now)
    return view


@router.post("/score", response_model=ScoreResponse)
def score(body: ScoreRequest):
    result = score_post(body.content, body.firstComment)
    return ScoreResponse(score=result.score, grade=result.grade, tips=result.tips)


@router.get("/posts", response_model=list[PostView])
def list_posts(
    store: Store,
    status_filter: Optional[PostStatus] = Query(None, alias="status"),
    tz: str = Query("UTC", description="IANA zone for scheduleDisplay"),
):
    """Posts in display order; scheduled ones carry display strings and a past-due flag."""
    posts = store.list_by_status(status_filter) if status_filter else store.list_all()
    now = datetime.now(timezone.utc)
    return [_view(p, now, tz) for p in store.sorted_for_display(posts)]


@router.get("/posts/stats", response_model=PostStatsResponse)
def post_stats(store: Store):
    return store.stats()


@router.post("/posts/drafts", response_model=Post, status_code=status.HTTP_201_CREATED)
def create_draft(body: DraftCreateRequest, store: Store):
    if not body.content.strip():
        raise _bad_request("Post content is required")
    return _created(store.create_draft(body.content, image=body.image, first_comment=body.firstComment))


@router.post("/posts/scheduled", response_model=Post, status_code=status.HTTP_201_CREATED)
def create_scheduled(body: ScheduledCreateRequest, store: Store):
    if not body.content.strip():
        raise _bad_request("Post content is required")
    scheduled_time = _resolve_schedule(body)
    return _created(
        store.create_scheduled(body.content, scheduled_time, image=body.image, first_comment=body.firstComment)
    )


@router.get("/posts/{post_id}", response_model=Post)
def get_post(post_id: str, store: Store):
    return _found(store.get(post_id), store)


@router.patch("/posts/{post_id}", response_model=Post)
def update_post(post_id: str, body: PostUpdateRequest, store: Store):
    changes = body.model_dump(exclude_unset=True)
    if "content" in changes and (changes["content"] is None or not changes["content"].strip()):
        raise _bad_request("Post content cannot be empty")
    if "scheduledTime" in changes:
        parsed = parse_timestamp(changes["scheduledTime"] or None)
        if parsed is None:
            raise _bad_request("Invalid scheduledTime")
        changes["scheduledTime"] = to_iso(parsed)
    current = _found(store.get(post_id), store)
    if current.status == PostStatus.PUBLISHED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Published posts cannot be edited")
    return _found(store.update(post_id, changes), store)


@router.delete("/posts/{post_id}")
def delete_post(post_id: str, store: Store):
    if not store.delete(post_id):
        raise storage_unavailable_exception()
    return {"ok": True}


@router.delete("/posts")
def clear_posts(store: Store):
    if not store.clear():
        raise storage_unavailable_exception()
    return {"ok": True}


@router.post("/posts/{post_id}/schedule", response_model=Post)
def schedule_post(post_id: str, body: ScheduleRequest, store: Store):
    current = _found(store.get(post_id), store)
    if current.status == PostStatus.PUBLISHED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Published posts cannot be rescheduled")
    return _found(store.schedule_draft(post_id, _resolve_schedule(body)), store)


@router.post("/posts/{post_id}/published", response_model=Post)
def mark_published(post_id: str, store: Store):
    """Record a publish that already happened elsewhere (e.g. posted by hand on LinkedIn)."""
    return _found(store.publish(post_id), store)
