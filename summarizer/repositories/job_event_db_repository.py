"""
Job Event database repository - append and read operations for the job_events table.
Follows the module-level function pattern: every function takes the session
and leaves commit/rollback to the caller.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from summarizer.database.models.job_event import JobEvent


async def append(
    session: AsyncSession,
    job_id: str,
    activity: str,
    details: Dict[str, Any],
    timestamp: datetime,
) -> JobEvent:
    """
    Insert a new event row.

    Args:
        session: Async database session
        job_id: Job identifier
        activity: Activity kind value
        details: JSON-serializable payload
        timestamp: Event time (UTC)

    Returns:
        Created JobEvent with id populated
    """
    event = JobEvent(
        job_id=job_id,
        activity=activity,
        details=details,
        timestamp=timestamp,
    )
    session.add(event)
    await session.flush()
    return event


async def list_by_job(session: AsyncSession, job_id: str) -> List[JobEvent]:
    """Get all events of a job in append order."""
    stmt = (
        select(JobEvent)
        .where(JobEvent.job_id == job_id)
        .order_by(JobEvent.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def find_latest(
    session: AsyncSession,
    job_id: str,
    activities: Sequence[str],
) -> Optional[JobEvent]:
    """
    Get the last-appended event of a job whose activity is one of `activities`.

    Returns:
        JobEvent or None if no event matches
    """
    stmt = (
        select(JobEvent)
        .where(JobEvent.job_id == job_id, JobEvent.activity.in_(list(activities)))
        .order_by(JobEvent.id.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_by_job(session: AsyncSession, job_id: str) -> int:
    """Count events recorded for a job."""
    stmt = select(func.count()).select_from(JobEvent).where(JobEvent.job_id == job_id)
    result = await session.execute(stmt)
    return result.scalar_one()
