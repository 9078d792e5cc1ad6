"""API v1 router: include all route modules, GET /health."""

from fastapi import APIRouter

from linkpost.api.v1 import ai, auth, linkedin, posts
from linkpost.config import get_settings

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(linkedin.router)
api_router.include_router(ai.router)
api_router.include_router(posts.router)


@api_router.get("/health")
def health():
    """Liveness plus which optional integrations are configured."""
    settings = get_settings()
    return {
        "ok": True,
        "linkedinConfigured": bool(settings.linkedin_client_id and settings.linkedin_client_secret),
        "sessionConfigured": bool(settings.session_secret),
        "postStorage": settings.post_storage,
    }
