"""Health check routes."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request) -> dict[str, str | bool]:
    """Readiness check endpoint.

    Reports whether an inference credential is configured; requests fail
    with a configuration error until it is.
    """
    config = request.app.state.config
    return {
        "status": "ready",
        "credential_configured": config.resolve_api_key() is not None,
    }
