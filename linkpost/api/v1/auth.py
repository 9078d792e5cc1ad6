"""LinkedIn OAuth endpoints: start, callback, status, disconnect."""

import logging
import uuid
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from linkpost.config import get_settings
from linkpost.core.exceptions import SessionConfigError
from linkpost.core.session import (
    Authenticated,
    OAuthPending,
    clear_session_cookie,
    set_oauth_state_cookie,
    set_session_cookie,
)
from linkpost.dependencies import CurrentSession
from linkpost.schemas.linkedin import AuthStatusResponse
from linkpost.services.linkedin_service import (
    build_authorize_url,
    handle_oauth_callback,
    redirect_uri_for,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _frontend_url(request: Request) -> str:
    settings = get_settings()
    return (settings.frontend_url or str(request.base_url)).rstrip("/")


@router.get("/linkedin")
@router.get("/start")
def connect_start(request: Request):
    settings = get_settings()
    if not settings.linkedin_client_id:
        return JSONResponse(status_code=500, content={"error": "LINKEDIN_CLIENT_ID not configured"})
    state = str(uuid.uuid4())
    auth_url = build_authorize_url(state, redirect_uri_for(str(request.base_url)))
    response = RedirectResponse(url=auth_url, status_code=302)
    try:
        set_oauth_state_cookie(response, state)
    except SessionConfigError as e:
        return JSONResponse(status_code=500, content={"error": str(e)})
    return response


@router.get("/linkedin/callback")
@router.get("/callback")
def connect_callback(request: Request, session: CurrentSession):
    params = request.query_params
    frontend = _frontend_url(request)
    pending = session if isinstance(session, OAuthPending) else None

    authenticated, err, expires_in = handle_oauth_callback(
        pending,
        params.get("state"),
        params.get("code"),
        redirect_uri_for(str(request.base_url)),
        error_from_platform=params.get("error"),
    )
    if err or authenticated is None:
        return RedirectResponse(url=f"{frontend}?linkedin_error={quote(err or 'server_error')}", status_code=302)

    settings = get_settings()
    max_age = settings.session_max_age_seconds
    if expires_in:
        max_age = min(expires_in, max_age)
    response = RedirectResponse(url=f"{frontend}?linkedin_connected=true", status_code=302)
    try:
        set_session_cookie(response, authenticated, max_age=max_age)
    except SessionConfigError:
        logger.error("Cannot store LinkedIn session: SESSION_SECRET not configured")
        return RedirectResponse(url=f"{frontend}?linkedin_error=server_error", status_code=302)
    return response


@router.get("/linkedin/status", response_model=AuthStatusResponse, response_model_exclude_none=True)
@router.get("/status", response_model=AuthStatusResponse, response_model_exclude_none=True)
def connection_status(session: CurrentSession):
    if isinstance(session, Authenticated):
        return AuthStatusResponse(connected=True, profile=session.profile)
    return AuthStatusResponse(connected=False)


@router.post("/linkedin/disconnect")
@router.post("/disconnect")
def disconnect():
    response = JSONResponse(content={"success": True})
    clear_session_cookie(response)
    return response
