"""
Job State model - explicit finite-state record kept alongside the event log.
"""
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from summarizer.database.base import Base


class JobState(Base):
    """
    Job States table - one row per job, upserted in the same transaction
    as every event append.
    """
    __tablename__ = "job_states"

    job_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    last_activity: Mapped[str] = mapped_column(String(50), nullable=False)
    last_event_id: Mapped[int] = mapped_column(Integer, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<JobState(job_id='{self.job_id}', status='{self.status}')>"
