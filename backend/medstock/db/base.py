"""SQLAlchemy declarative base and common utilities."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current UTC time used for every system timestamp."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CreatedAtMixin:
    """Mixin for an immutable created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin for created_at and updated_at timestamps.

    ``updated_at`` is also assigned explicitly by the services, so that a
    mutation that changes no other column still refreshes it.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class VersionMixin:
    """Optimistic locking via a version counter.

    Models using this mixin gain a ``version`` column that starts at 1
    and is incremented on every update. Writers that read-modify-write
    compare against the version they read (compare-and-swap).
    """

    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)

    def increment_version(self) -> None:
        """Increment the version counter after a successful update."""
        self.version += 1
