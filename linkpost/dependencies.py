"""FastAPI dependency injection: post store, decrypted session cookie, LinkedIn session."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Cookie, Depends

from linkpost.config import get_settings
from linkpost.core.exceptions import not_connected_exception
from linkpost.core.session import COOKIE_NAME, Authenticated, SessionPayload, read_session
from linkpost.services.post_repository import build_repository
from linkpost.services.post_store import PostStore


@lru_cache
def get_post_store() -> PostStore:
    """One store per process, backed by the configured medium."""
    settings = get_settings()
    return PostStore(build_repository(settings), storage_key=settings.post_storage_key)


def get_session_optional(
    li_session: Annotated[Optional[str], Cookie(alias=COOKIE_NAME)] = None,
) -> Optional[SessionPayload]:
    """Decrypted, unexpired session or None; never raises on a bad cookie."""
    return read_session(li_session)


def get_linkedin_session(
    session: Annotated[Optional[SessionPayload], Depends(get_session_optional)],
) -> Authenticated:
    """Require an authenticated LinkedIn session; raise 401 otherwise."""
    if not isinstance(session, Authenticated):
        raise not_connected_exception()
    return session


Store = Annotated[PostStore, Depends(get_post_store)]
CurrentSession = Annotated[Optional[SessionPayload], Depends(get_session_optional)]
LinkedInSession = Annotated[Authenticated, Depends(get_linkedin_session)]
