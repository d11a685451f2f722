from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

OPEN_STATUSES = ("pending", "in_progress", "todo")


class ActionItem(TimestampMixin, Base):
    __tablename__ = "prep_checklist"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, server_default="pending")

    session: Mapped["RecordingSession"] = relationship(back_populates="action_items")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'todo', 'completed', 'cancelled')",
            name="ck_prep_checklist_status",
        ),
    )
