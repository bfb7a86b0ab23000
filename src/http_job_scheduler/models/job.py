"""Job ORM model for scheduled HTTP invocations."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Enum as SqlEnum, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from http_job_scheduler.models.base import Base


class DeliveryMode(str, Enum):
    """Retry policy applied to transient delivery failures."""

    AT_LEAST_ONCE = "AT_LEAST_ONCE"

    @classmethod
    def _missing_(cls, value: object) -> DeliveryMode | None:
        # Accept any letter case and the legacy "ATLEAST_ONCE" spelling.
        if not isinstance(value, str):
            return None
        normalized = value.strip().upper().replace("-", "_")
        if normalized in {"AT_LEAST_ONCE", "ATLEAST_ONCE"}:
            return cls.AT_LEAST_ONCE
        return None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Job(Base):
    """Persistent definition of a recurring HTTP call."""

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    schedule: Mapped[str] = mapped_column(String(255), nullable=False)
    target_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    delivery_mode: Mapped[DeliveryMode] = mapped_column(
        SqlEnum(
            DeliveryMode,
            name="delivery_mode",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=DeliveryMode.AT_LEAST_ONCE,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        onupdate=_utc_now,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["DeliveryMode", "Job"]
