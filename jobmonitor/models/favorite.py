from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from jobmonitor.models.base import Base, TimestampMixin


class JobFavorite(Base, TimestampMixin):
    """A user's subscription to notifications for a named job."""

    __tablename__ = "job_favorites"
    __table_args__ = (UniqueConstraint("user_id", "job_name", name="uq_job_favorites_user_job"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(200), index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    notify_on_failure: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_on_success: Mapped[bool] = mapped_column(Boolean, default=False)
    notify_on_start: Mapped[bool] = mapped_column(Boolean, default=False)
    # Highest execution id a failure notification was dispatched for
    last_notified_execution_id: Mapped[int | None] = mapped_column(BigInteger, default=None)

    def __repr__(self) -> str:
        return f"<JobFavorite {self.user_id}:{self.job_name}>"
