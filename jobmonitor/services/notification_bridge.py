"""
Favorites scan run after every import pass.

Looks at the executions an import touched and notifies the users who
favorited their jobs:

- FAIL with notify_on_failure: when the import moved the execution into FAIL,
  or when its id is above the favorite's last_notified_execution_id
  watermark (a failure whose earlier dispatch did not go out). Re-importing
  an already reported failure stays silent. The watermark only moves forward.
- DONE with notify_on_success and STRT with notify_on_start: only when the
  import changed the execution's status.
"""

from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from jobmonitor.config import get_config
from jobmonitor.core.logging import get_logger
from jobmonitor.importer.base import ExecutionChange
from jobmonitor.models.execution import ImportedJobExecution
from jobmonitor.models.favorite import JobFavorite
from jobmonitor.models.user import User
from jobmonitor.services.favorites import list_subscribers
from jobmonitor.services.notification_service import NotificationKind, NotificationService

logger = get_logger(__name__)


def _collapse(changes: list[ExecutionChange]) -> list[ExecutionChange]:
    """One change per execution, keeping the earliest previous status."""
    collapsed: dict[int, ExecutionChange] = {}
    for change in changes:
        earlier = collapsed.get(change.execution_id)
        if earlier is not None:
            change = change.model_copy(
                update={
                    "previous_status": earlier.previous_status,
                    "change_type": earlier.change_type,
                }
            )
        collapsed[change.execution_id] = change
    return sorted(collapsed.values(), key=lambda c: c.execution_id)


def _failure_due(
    favorite: JobFavorite,
    execution: ImportedJobExecution,
    change: ExecutionChange,
) -> bool:
    # Moved into FAIL by this import, or never reported
    if change.status_changed:
        return True
    watermark = favorite.last_notified_execution_id
    return watermark is None or execution.execution_id > watermark


def select_notification(
    favorite: JobFavorite,
    execution: ImportedJobExecution,
    change: ExecutionChange,
    use_watermark: bool = True,
) -> NotificationKind | None:
    """Decide which notification, if any, a favorite gets for one change."""
    if execution.is_failed and favorite.notify_on_failure:
        if use_watermark:
            return NotificationKind.FAILURE if _failure_due(favorite, execution, change) else None
        return NotificationKind.FAILURE if change.status_changed else None

    if not change.status_changed:
        return None
    if execution.is_completed and favorite.notify_on_success:
        return NotificationKind.SUCCESS
    if execution.is_running and favorite.notify_on_start:
        return NotificationKind.START
    return None


async def notify_favorites(
    db: AsyncSession,
    changes: list[ExecutionChange],
    notifier: NotificationService | None = None,
) -> int:
    """
    Notify subscribers about the executions touched by an import.

    Returns the number of notifications dispatched. Watermarks are committed
    before returning.
    """
    if not changes:
        return 0

    notifier = notifier or NotificationService()
    if not notifier.enabled:
        logger.debug("favorites_scan_skipped_notifications_disabled")
        return 0

    use_watermark = get_config().notifications.failure_watermark
    pending = _collapse(changes)

    subscribers: dict[str, list[JobFavorite]] = defaultdict(list)
    for favorite in await list_subscribers(db, {c.job_name for c in pending}):
        subscribers[favorite.job_name].append(favorite)

    if not subscribers:
        return 0

    users: dict[int, User | None] = {}
    sent = 0

    for change in pending:
        favorites = subscribers.get(change.job_name)
        if not favorites:
            continue

        execution = await db.get(ImportedJobExecution, change.execution_id)
        if execution is None:
            continue

        for favorite in favorites:
            kind = select_notification(favorite, execution, change, use_watermark)
            if kind is None:
                continue

            if favorite.user_id not in users:
                users[favorite.user_id] = await db.get(User, favorite.user_id)
            user = users[favorite.user_id]
            if user is None:
                logger.bind(favorite_id=favorite.id, user_id=favorite.user_id).warning(
                    "favorite_user_missing"
                )
                continue

            if not await notifier.notify(kind, user, execution):
                continue

            sent += 1
            if kind == NotificationKind.FAILURE:
                watermark = favorite.last_notified_execution_id or 0
                favorite.last_notified_execution_id = max(watermark, execution.execution_id)

    await db.commit()

    logger.bind(changes=len(pending), notifications=sent).info("favorites_scan_completed")
    return sent
