"""LinkedIn relay request/response schemas."""

from typing import Optional

from pydantic import BaseModel

from linkpost.core.session import LinkedInProfile


class AuthStatusResponse(BaseModel):
    connected: bool
    profile: Optional[LinkedInProfile] = None


class PublishRequest(BaseModel):
    content: str
    image: Optional[str] = None  # data URI


class PublishResponse(BaseModel):
    success: bool
    postId: Optional[str] = None


class RemotePost(BaseModel):
    id: Optional[str] = None
    text: str = ""
    visibility: Optional[str] = None
    createdAt: Optional[int] = None
    lastModifiedAt: Optional[int] = None
    lifecycleState: Optional[str] = None
    hasMedia: bool = False


class Paging(BaseModel):
    start: int
    count: int
    total: Optional[int] = None


class RemotePostsResponse(BaseModel):
    posts: list[RemotePost]
    paging: Paging
