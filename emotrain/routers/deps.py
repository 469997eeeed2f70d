"""Shared request dependencies: caller identity, play-through registry, progress writer."""
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from emotrain.core.config import get_settings
from emotrain.core.errors import NotAuthorized
from emotrain.core.security import SessionContext, verify_session_token
from emotrain.db.session import get_session_factory
from emotrain.services.playthroughs import PlaythroughRegistry
from emotrain.services.progress import ProgressWriter

settings = get_settings()


def _token_from_request(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(settings.auth_cookie_name)


def get_session_context(request: Request) -> SessionContext:
    """Caller identity from the signed token; 401 if missing or invalid."""
    ctx = verify_session_token(_token_from_request(request))
    if ctx is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


def require_therapist(
    ctx: Annotated[SessionContext, Depends(get_session_context)],
) -> SessionContext:
    if not ctx.is_therapist:
        raise NotAuthorized("Therapist access required")
    return ctx


def get_registry(request: Request) -> PlaythroughRegistry:
    return request.app.state.playthroughs


def get_progress_writer(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ProgressWriter:
    return ProgressWriter(session_factory)


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
TherapistSession = Annotated[SessionContext, Depends(require_therapist)]
Registry = Annotated[PlaythroughRegistry, Depends(get_registry)]
Writer = Annotated[ProgressWriter, Depends(get_progress_writer)]
