from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin


class Summary(TimestampMixin, Base):
    __tablename__ = "summaries"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    tldr: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_decisions: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    action_items: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    generation_status: Mapped[str] = mapped_column(
        String, nullable=False, server_default="pending"
    )

    session: Mapped["RecordingSession"] = relationship(back_populates="summaries")

    __table_args__ = (
        CheckConstraint(
            "generation_status IN ('pending', 'generating', 'completed', 'failed')",
            name="ck_summaries_generation_status",
        ),
        Index("ix_summaries_user_created", "user_id", "created_at"),
    )
