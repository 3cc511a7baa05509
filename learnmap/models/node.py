"""Node model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnmap.core.database import Base, utcnow


class Node(Base):
    """One lesson or resource in a roadmap.

    ``parent_id`` is a plain self-referencing key. Turning ids into a
    traversable structure is the job of ``services.hierarchy``.
    """

    __tablename__ = "nodes"
    __table_args__ = (Index("ix_nodes_roadmap_parent", "roadmap_id", "parent_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    roadmap_id: Mapped[int] = mapped_column(ForeignKey("roadmaps.id", ondelete="CASCADE"))
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("nodes.id", ondelete="SET NULL"), default=None
    )

    # Content
    title: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String, default="other")  # article, video, book, ...
    topic: Mapped[str | None] = mapped_column(String, default=None)
    resource_url: Mapped[str | None] = mapped_column(String, default=None)
    content: Mapped[str | None] = mapped_column(Text, default=None)  # markdown notes

    # Progress
    time_estimate: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    status: Mapped[str] = mapped_column(String, default="not_started")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)

    # Sibling position under parent_id
    order: Mapped[int] = mapped_column("order", Integer, default=0)

    roadmap = relationship("Roadmap", back_populates="nodes")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
