"""
Job Event model - the append-only per-job stage event log.
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from summarizer.database.base import Base


class JobEvent(Base):
    """
    Job Events table - one immutable row per recorded stage outcome.

    The autoincrement id is the append order; events are never updated
    or deleted.
    """
    __tablename__ = "job_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    activity: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_job_events_job_id_activity", "job_id", "activity"),
    )

    def __repr__(self) -> str:
        return f"<JobEvent(id={self.id}, job_id='{self.job_id}', activity='{self.activity}')>"
