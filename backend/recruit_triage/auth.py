"""API auth: optional static API key for the trigger endpoints."""
import secrets

from fastapi import HTTPException, Request, status

from .config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_api_key(request: Request) -> None:
    """No-op when API_KEY is unset; otherwise the configured header must match."""
    settings = get_settings(request)
    if not settings.api_key:
        return
    provided = request.headers.get(settings.api_key_header) or ""
    if not secrets.compare_digest(provided, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
