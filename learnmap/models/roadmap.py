"""Roadmap model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnmap.core.database import Base, utcnow


class Roadmap(Base):
    """A user's learning plan; owns a forest of nodes."""

    __tablename__ = "roadmaps"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)

    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    daily_focus_time: Mapped[int] = mapped_column(Integer, default=60)  # minutes

    nodes = relationship(
        "Node",
        back_populates="roadmap",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
