"""Per-user job favorites."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.core.logging import get_logger
from jobmonitor.models.favorite import JobFavorite
from jobmonitor.schemas.favorite import FavoriteInfo, FavoriteResponse, FavoriteSettingsUpdate
from jobmonitor.services.executions import get_job_summary

logger = get_logger(__name__)


class FavoriteError(ValueError):
    """Favorite operation rejected (already favorited, or not a favorite)."""


async def get_favorite(db: AsyncSession, user_id: int, job_name: str) -> JobFavorite | None:
    result = await db.execute(
        select(JobFavorite).where(
            JobFavorite.user_id == user_id,
            JobFavorite.job_name == job_name,
        )
    )
    return result.scalar_one_or_none()


async def is_favorited(db: AsyncSession, user_id: int, job_name: str) -> bool:
    return await get_favorite(db, user_id, job_name) is not None


async def add_favorite(db: AsyncSession, user_id: int, job_name: str) -> JobFavorite:
    if await is_favorited(db, user_id, job_name):
        raise FavoriteError("Job is already in favorites")

    favorite = JobFavorite(
        user_id=user_id,
        job_name=job_name,
        notify_on_failure=True,
        notify_on_success=False,
        notify_on_start=False,
    )
    db.add(favorite)
    await db.flush()
    await db.refresh(favorite)

    logger.bind(user_id=user_id, job_name=job_name).info("favorite_added")
    return favorite


async def remove_favorite(db: AsyncSession, user_id: int, job_name: str) -> bool:
    """Remove a favorite. Returns False when there was nothing to remove."""
    favorite = await get_favorite(db, user_id, job_name)
    if favorite is None:
        return False

    await db.delete(favorite)
    await db.flush()

    logger.bind(user_id=user_id, job_name=job_name).info("favorite_removed")
    return True


async def update_settings(
    db: AsyncSession,
    user_id: int,
    job_name: str,
    update: FavoriteSettingsUpdate,
) -> JobFavorite:
    favorite = await get_favorite(db, user_id, job_name)
    if favorite is None:
        raise FavoriteError("Job is not in favorites")

    for field, value in update.model_dump(exclude_none=True).items():
        setattr(favorite, field, value)
    await db.flush()

    logger.bind(user_id=user_id, job_name=job_name, **update.model_dump(exclude_none=True)).info(
        "favorite_settings_updated"
    )
    return favorite


async def list_favorites(db: AsyncSession, user_id: int) -> list[FavoriteInfo]:
    """A user's favorites by job name, each with the latest state of its job."""
    result = await db.execute(
        select(JobFavorite).where(JobFavorite.user_id == user_id).order_by(JobFavorite.job_name)
    )

    favorites = []
    for favorite in result.scalars().all():
        summary = await get_job_summary(db, favorite.job_name)
        favorites.append(
            FavoriteInfo(
                favorite=FavoriteResponse.model_validate(favorite),
                latest_execution=summary.latest_execution if summary else None,
                job_summary=summary,
            )
        )
    return favorites


async def list_subscribers(db: AsyncSession, job_names: set[str]) -> list[JobFavorite]:
    """Favorites with any notification toggle on for the given jobs."""
    if not job_names:
        return []

    result = await db.execute(
        select(JobFavorite)
        .where(JobFavorite.job_name.in_(job_names))
        .where(
            JobFavorite.notify_on_failure
            | JobFavorite.notify_on_success
            | JobFavorite.notify_on_start
        )
        .order_by(JobFavorite.job_name, JobFavorite.user_id)
    )
    return list(result.scalars().all())
