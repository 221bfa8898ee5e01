import uuid
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.config import AppConfig, Settings, get_config, get_settings
from jobmonitor.core.database import get_db
from jobmonitor.core.datetime_utils import is_expired
from jobmonitor.importer.hotfolder import HotfolderWatcher
from jobmonitor.models.user import Session, User
from jobmonitor.services.notification_service import NotificationService

DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Config = Annotated[AppConfig, Depends(get_config)]


def _parse_session_id(raw: str | None) -> uuid.UUID | None:
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


async def get_current_user_optional(
    db: DBSession,
    session_id: str | None = Cookie(default=None, alias="session_id"),
) -> User | None:
    """
    Resolve the session cookie issued by the login layer.

    Unknown, malformed and expired sessions all resolve to anonymous; expired
    rows are deleted on the way.
    """
    session_uuid = _parse_session_id(session_id)
    if session_uuid is None:
        return None

    session = await db.scalar(select(Session).where(Session.id == session_uuid))
    if session is None:
        return None

    if is_expired(session.expires_at):
        logger.bind(user_id=session.user_id).debug("session_expired")
        await db.delete(session)
        return None

    return session.user


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Get the current user, raise 403 unless they are an admin."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user


def get_hotfolder(request: Request) -> HotfolderWatcher | None:
    """The watcher started by the application lifespan, if any."""
    return getattr(request.app.state, "hotfolder", None)


def get_notifier() -> NotificationService:
    return NotificationService()


# Authenticated endpoint aliases
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_admin_user)]
Hotfolder = Annotated[HotfolderWatcher | None, Depends(get_hotfolder)]
Notifier = Annotated[NotificationService, Depends(get_notifier)]
