"""
Job State database repository - reads and upserts for the job_states table.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from summarizer.database.models.job_state import JobState


async def get(session: AsyncSession, job_id: str) -> Optional[JobState]:
    """Get the state row of a job, or None if the job has no events."""
    return await session.get(JobState, job_id)


async def upsert(
    session: AsyncSession,
    job_id: str,
    status: str,
    last_activity: str,
    last_event_id: int,
    updated_at: datetime,
    error: Optional[str] = None,
) -> JobState:
    """
    Create or update the state row of a job.

    Must run in the same transaction as the event append it reflects.
    """
    state = await session.get(JobState, job_id)
    if state is None:
        state = JobState(
            job_id=job_id,
            status=status,
            last_activity=last_activity,
            last_event_id=last_event_id,
            error=error,
            created_at=updated_at,
            updated_at=updated_at,
        )
        session.add(state)
    else:
        state.status = status
        state.last_activity = last_activity
        state.last_event_id = last_event_id
        state.error = error
        state.updated_at = updated_at
    await session.flush()
    return state


async def touch(
    session: AsyncSession,
    job_id: str,
    last_activity: str,
    last_event_id: int,
    updated_at: datetime,
    initial_status: str,
) -> JobState:
    """
    Record a non-status-bearing event: bump the pointers, keep the status.

    Creates the row with `initial_status` for a job seen for the first time.
    """
    state = await session.get(JobState, job_id)
    if state is None:
        return await upsert(
            session,
            job_id=job_id,
            status=initial_status,
            last_activity=last_activity,
            last_event_id=last_event_id,
            updated_at=updated_at,
        )
    state.last_activity = last_activity
    state.last_event_id = last_event_id
    state.updated_at = updated_at
    await session.flush()
    return state
