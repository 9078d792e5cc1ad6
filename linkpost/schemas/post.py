"""Post record and composer request/response schemas (camelCase for FE contract)."""

import enum
from typing import Optional

from pydantic import BaseModel, Field

MAX_CONTENT_LENGTH = 3000


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class Post(BaseModel):
    """A locally stored post candidate. Timestamps are ISO-8601 UTC strings."""

    id: str
    content: str = ""
    image: Optional[str] = None  # data URI
    firstComment: Optional[str] = None
    scheduledTime: Optional[str] = None
    status: PostStatus = PostStatus.DRAFT
    createdAt: str
    publishedAt: Optional[str] = None

    model_config = {"use_enum_values": True}


class PostView(Post):
    """A post as listed in the composer, with schedule display strings."""

    scheduleDisplay: Optional[str] = None
    relativeTime: Optional[str] = None
    pastDue: bool = False


class DraftCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)
    image: Optional[str] = None
    firstComment: Optional[str] = None


class ScheduleFields(BaseModel):
    """Either an ISO `scheduledTime`, or form-style `date` + `time` read in `timezone`."""

    scheduledTime: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    timezone: str = "UTC"


class ScheduledCreateRequest(DraftCreateRequest, ScheduleFields):
    pass


class PostUpdateRequest(BaseModel):
    content: Optional[str] = Field(None, max_length=MAX_CONTENT_LENGTH)
    image: Optional[str] = None
    firstComment: Optional[str] = None
    scheduledTime: Optional[str] = None


class ScheduleRequest(ScheduleFields):
    pass


class PostStatsResponse(BaseModel):
    total: int
    drafts: int
    scheduled: int
    published: int


class ScoreRequest(BaseModel):
    content: Optional[str] = None
    firstComment: Optional[str] = None


class ScoreResponse(BaseModel):
    score: int
    grade: str
    tips: list[str]
