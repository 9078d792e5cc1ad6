"""LinkedIn OAuth code exchange, profile fetch, post listing and publishing (with image upload)."""

import base64
import binascii
import logging
import re
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from linkpost.config import get_settings
from linkpost.core.exceptions import LinkedInAPIError, LinkedInScopeError
from linkpost.core.session import Authenticated, LinkedInProfile, OAuthPending, now_ms

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
USERINFO_URL = "https://api.linkedin.com/v2/userinfo"
POSTS_URL = "https://api.linkedin.com/rest/posts"
UGC_POSTS_URL = "https://api.linkedin.com/v2/ugcPosts"
REGISTER_UPLOAD_URL = "https://api.linkedin.com/v2/assets?action=registerUpload"
OAUTH_SCOPES = "openid profile email w_member_social r_member_social"
READ_POSTS_SCOPE = "r_member_social"
MAX_POSTS_PAGE = 50
DEFAULT_POSTS_PAGE = 20

DATA_URI_PREFIX = re.compile(r"^data:image/\w+;base64,")


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        return data.get("message") or data.get("error_description") or fallback
    return fallback


def redirect_uri_for(base_url: str) -> str:
    settings = get_settings()
    if settings.linkedin_redirect_uri:
        return settings.linkedin_redirect_uri
    return f"{base_url.rstrip('/')}{settings.api_v1_prefix}/auth/linkedin/callback"


def build_authorize_url(state: str, redirect_uri: str) -> str:
    settings = get_settings()
    params = {
        "response_type": "code",
        "client_id": settings.linkedin_client_id,
        "redirect_uri": redirect_uri,
        "state": state,
        "scope": OAUTH_SCOPES,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(code: str, redirect_uri: str) -> dict[str, Any]:
    settings = get_settings()
    resp = httpx.post(
        TOKEN_URL,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        data={
            "grant_type": "authorization_code",
            "code": code,
            "client_id": settings.linkedin_client_id,
            "client_secret": settings.linkedin_client_secret,
            "redirect_uri": redirect_uri,
        },
        timeout=15.0,
    )
    if resp.status_code != 200:
        raise LinkedInAPIError(_error_message(resp, "Token exchange failed"), resp.status_code)
    try:
        data = resp.json()
    except ValueError as e:
        raise LinkedInAPIError("Token response is not JSON", resp.status_code) from e
    if not isinstance(data, dict) or not data.get("access_token"):
        raise LinkedInAPIError("No access token in response", resp.status_code)
    return data


def fetch_profile(access_token: str) -> LinkedInProfile:
    resp = httpx.get(
        USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=10.0,
    )
    if resp.status_code != 200:
        raise LinkedInAPIError(_error_message(resp, "Profile fetch failed"), resp.status_code)
    try:
        d = resp.json()
    except ValueError as e:
        raise LinkedInAPIError("Profile response is not JSON", resp.status_code) from e
    if not isinstance(d, dict) or not d.get("sub"):
        raise LinkedInAPIError("LinkedIn profile 'sub' ID not found in API response", resp.status_code)
    return LinkedInProfile(
        id=d["sub"],
        name=d.get("name"),
        email=d.get("email"),
        picture=d.get("picture"),
    )


def handle_oauth_callback(
    pending: Optional[OAuthPending],
    state: Optional[str],
    code: Optional[str],
    redirect_uri: str,
    error_from_platform: Optional[str] = None,
) -> tuple[Optional[Authenticated], Optional[str], Optional[int]]:
    """
    Validate state, exchange code, fetch profile.
    Returns (session, None, expires_in) on success or (None, error_code, None) on failure.
    """
    if error_from_platform:
        return None, error_from_platform, None
    if pending is None or not state or pending.oauthState != state:
        return None, "state_mismatch", None
    if not code:
        return None, "missing_code", None

    try:
        token_data = exchange_code(code, redirect_uri)
    except LinkedInAPIError as e:
        logger.error("Token exchange failed: %s (status=%s)", e.message, e.status_code)
        return None, "token_exchange_failed", None
    except httpx.HTTPError as e:
        logger.error("OAuth callback error: %s", e, exc_info=True)
        return None, "server_error", None

    access_token = token_data["access_token"]
    try:
        profile = fetch_profile(access_token)
    except LinkedInAPIError as e:
        logger.error("Profile fetch failed: %s (status=%s)", e.message, e.status_code)
        return None, "profile_fetch_failed", None
    except httpx.HTTPError as e:
        logger.error("OAuth callback error: %s", e, exc_info=True)
        return None, "server_error", None

    try:
        expires_in = int(token_data.get("expires_in") or 0)
    except (TypeError, ValueError):
        expires_in = 0
    if expires_in <= 0:
        expires_in = get_settings().session_max_age_seconds
    session = Authenticated(
        accessToken=access_token,
        expiresAt=now_ms() + expires_in * 1000,
        profile=profile,
    )
    logger.info("LinkedIn connected for member %s", profile.id)
    return session, None, expires_in


def _normalize_post(post: dict[str, Any]) -> dict[str, Any]:
    content = post.get("content")
    return {
        "id": post.get("id"),
        "text": post.get("commentary") or "",
        "visibility": post.get("visibility"),
        "createdAt": post.get("createdAt"),
        "lastModifiedAt": post.get("lastModifiedAt"),
        "lifecycleState": post.get("lifecycleState"),
        "hasMedia": bool(content and len(content) > 0),
    }


def list_posts(session: Authenticated, start: int = 0, count: int = DEFAULT_POSTS_PAGE) -> dict[str, Any]:
    """Fetch the member's own posts, newest-modified first, mapped to the composer shape."""
    settings = get_settings()
    count = min(count or DEFAULT_POSTS_PAGE, MAX_POSTS_PAGE)
    start = max(start or 0, 0)
    resp = httpx.get(
        POSTS_URL,
        params={
            "q": "author",
            "author": session.author_urn,
            "count": str(count),
            "start": str(start),
            "sortBy": "LAST_MODIFIED",
        },
        headers={
            "Authorization": f"Bearer {session.accessToken}",
            "X-Restli-Protocol-Version": "2.0.0",
            "LinkedIn-Version": settings.linkedin_api_version,
        },
        timeout=settings.linkedin_timeout_seconds,
    )
    if resp.status_code == 403:
        raise LinkedInScopeError(
            READ_POSTS_SCOPE,
            "Your LinkedIn app does not have permission to read posts. The r_member_social scope is required.",
        )
    if resp.status_code != 200:
        raise LinkedInAPIError(
            _error_message(resp, f"LinkedIn API error: {resp.status_code}"), resp.status_code
        )
    data = resp.json()
    return {
        "posts": [_normalize_post(p) for p in data.get("elements") or []],
        "paging": {"start": start, "count": count, "total": (data.get("paging") or {}).get("total")},
    }


def decode_data_uri(image: str) -> bytes:
    """Strip a `data:image/...;base64,` prefix and decode; raises ValueError on bad input."""
    payload = DATA_URI_PREFIX.sub("", image, count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Image must be a base64 data URI") from e


def upload_image(access_token: str, owner_urn: str, image: str) -> str:
    """Register an upload, PUT the bytes, return the digital media asset URN."""
    settings = get_settings()
    image_bytes = decode_data_uri(image)
    register = httpx.post(
        REGISTER_UPLOAD_URL,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        },
        json={
            "registerUploadRequest": {
                "recipes": ["urn:li:digitalmediaRecipe:feedshare-image"],
                "owner": owner_urn,
                "serviceRelationships": [
                    {
                        "relationshipType": "OWNER",
                        "identifier": "urn:li:userGeneratedContent",
                    }
                ],
            }
        },
        timeout=settings.linkedin_timeout_seconds,
    )
    if register.status_code >= 400:
        raise LinkedInAPIError(
            _error_message(register, "Failed to register image upload"), register.status_code
        )
    value = register.json().get("value") or {}
    mechanism = (value.get("uploadMechanism") or {}).get(
        "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"
    ) or {}
    upload_url = mechanism.get("uploadUrl")
    asset = value.get("asset")
    if not upload_url or not asset:
        raise LinkedInAPIError("LinkedIn did not return an upload URL", register.status_code)

    up = httpx.put(
        upload_url,
        content=image_bytes,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/octet-stream",
        },
        timeout=120,
    )
    if up.status_code >= 400:
        raise LinkedInAPIError("Failed to upload image to LinkedIn", up.status_code)
    return asset


def publish_post(session: Authenticated, content: str, image: Optional[str] = None) -> Optional[str]:
    """Create a public UGC post; returns the new post id from `x-restli-id`."""
    settings = get_settings()
    media_asset = upload_image(session.accessToken, session.author_urn, image) if image else None

    share_content: dict[str, Any] = {
        "shareCommentary": {"text": content},
        "shareMediaCategory": "IMAGE" if media_asset else "NONE",
    }
    if media_asset:
        share_content["media"] = [{"status": "READY", "media": media_asset}]

    resp = httpx.post(
        UGC_POSTS_URL,
        headers={
            "Authorization": f"Bearer {session.accessToken}",
            "Content-Type": "application/json",
            "X-Restli-Protocol-Version": "2.0.0",
        },
        json={
            "author": session.author_urn,
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        },
        timeout=settings.linkedin_timeout_seconds,
    )
    if resp.status_code >= 400:
        message = _error_message(resp, f"LinkedIn API error: {resp.status_code}")
        logger.error("LinkedIn publish error: %s (status=%s)", message, resp.status_code)
        raise LinkedInAPIError(message, resp.status_code)
    post_id = resp.headers.get("x-restli-id")
    logger.info("Published LinkedIn post %s", post_id)
    return post_id
