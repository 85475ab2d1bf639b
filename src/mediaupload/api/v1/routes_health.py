"""Health check endpoint for MediaUpload Engine."""

from fastapi import APIRouter

from mediaupload.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Reports configuration only; no storage call is made so the check stays fast.
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "storageBackend": settings.STORAGE_BACKEND,
        "signingConfigured": settings.signing_configured,
    }
