"""
Job Log -- the durable, append-only record of every stage outcome per job.

Events live in the job_events table; each append also updates the job's
explicit state row inside the same transaction. When enabled, every event
is mirrored as one JSON line to logs/processing-YYYY-MM-DD.log.

Write faults propagate to the caller. Nothing here swallows them.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from summarizer.core.config import get_settings
from summarizer.database.models.job_event import JobEvent
from summarizer.database.models.job_state import JobState
from summarizer.models.domain import ActivityKind, JobStateInfo, JobStatus, StageEvent
from summarizer.repositories import job_event_db_repository, job_state_db_repository
from summarizer.services.pipeline.status import status_for

logger = logging.getLogger(__name__)

ActivityArg = Union[ActivityKind, str]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_stage_event(row: JobEvent) -> StageEvent:
    return StageEvent(
        id=row.id,
        job_id=row.job_id,
        activity=ActivityKind(row.activity),
        details=row.details or {},
        timestamp=_as_utc(row.timestamp),
    )


def _to_state_info(row: JobState) -> JobStateInfo:
    return JobStateInfo(
        job_id=row.job_id,
        status=JobStatus(row.status),
        last_activity=ActivityKind(row.last_activity),
        last_event_id=row.last_event_id,
        error=row.error,
        updated_at=_as_utc(row.updated_at),
    )


def _normalize_details(details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Make details JSON-safe (paths, datetimes, enums become strings)."""
    if not details:
        return {}
    return json.loads(json.dumps(details, default=str))


class JobLog:
    """Append-only per-job event store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        mirror_dir: Optional[Path] = None,
    ):
        """
        Args:
            session_factory: Factory for database sessions
            mirror_dir: Directory for the JSONL day files; None disables mirroring
        """
        self.session_factory = session_factory
        self.mirror_dir = Path(mirror_dir) if mirror_dir is not None else None

    async def append(
        self,
        job_id: str,
        activity: ActivityArg,
        details: Optional[Dict[str, Any]] = None,
    ) -> StageEvent:
        """
        Record one immutable event and update the job's state row.

        Returns:
            The stored StageEvent
        """
        activity = ActivityKind(activity)
        payload = _normalize_details(details)
        timestamp = datetime.now(timezone.utc)

        async with self.session_factory() as session:
            async with session.begin():
                row = await job_event_db_repository.append(
                    session,
                    job_id=job_id,
                    activity=activity.value,
                    details=payload,
                    timestamp=timestamp,
                )
                status = status_for(activity, payload)
                if status is None:
                    await job_state_db_repository.touch(
                        session,
                        job_id=job_id,
                        last_activity=activity.value,
                        last_event_id=row.id,
                        updated_at=timestamp,
                        initial_status=JobStatus.CREATED.value,
                    )
                else:
                    await job_state_db_repository.upsert(
                        session,
                        job_id=job_id,
                        status=status.value,
                        last_activity=activity.value,
                        last_event_id=row.id,
                        updated_at=timestamp,
                        error=payload.get("error") if status == JobStatus.FAILED else None,
                    )
                event = StageEvent(
                    id=row.id,
                    job_id=job_id,
                    activity=activity,
                    details=payload,
                    timestamp=timestamp,
                )

        logger.info(f"Job {job_id}: recorded {activity.value} (event {event.id})")

        if self.mirror_dir is not None:
            await asyncio.to_thread(self._write_mirror_line, event)

        return event

    async def query(self, job_id: str) -> List[StageEvent]:
        """All events of a job in append order. Empty for unknown ids."""
        async with self.session_factory() as session:
            rows = await job_event_db_repository.list_by_job(session, job_id)
        return [_to_stage_event(row) for row in rows]

    async def find_latest(
        self,
        job_id: str,
        activity: Union[ActivityArg, Sequence[ActivityArg]],
    ) -> Optional[StageEvent]:
        """
        The last-appended event of a given kind (or of any of several kinds).

        Returns:
            StageEvent, or None when the job has no such event
        """
        if isinstance(activity, (ActivityKind, str)):
            kinds = [ActivityKind(activity).value]
        else:
            kinds = [ActivityKind(a).value for a in activity]

        async with self.session_factory() as session:
            row = await job_event_db_repository.find_latest(session, job_id, kinds)
        return _to_stage_event(row) if row is not None else None

    async def get_state(self, job_id: str) -> Optional[JobStateInfo]:
        """The job's explicit state record, or None for unknown ids."""
        async with self.session_factory() as session:
            row = await job_state_db_repository.get(session, job_id)
        return _to_state_info(row) if row is not None else None

    def mirror_path_for(self, timestamp: datetime) -> Path:
        return self.mirror_dir / f"processing-{timestamp.strftime('%Y-%m-%d')}.log"

    def _write_mirror_line(self, event: StageEvent) -> None:
        self.mirror_dir.mkdir(parents=True, exist_ok=True)
        line = json.dumps(
            {
                "timestamp": event.timestamp.isoformat(),
                "jobId": event.job_id,
                "activity": event.activity.value,
                "details": event.details,
            },
            ensure_ascii=False,
        )
        with open(self.mirror_path_for(event.timestamp), "a", encoding="utf-8") as f:
            f.write(line + "\n")


# Global job log instance (lazily initialized)
_job_log: Optional[JobLog] = None


def get_job_log() -> JobLog:
    """Get the global JobLog bound to the application database."""
    global _job_log
    if _job_log is None:
        from summarizer.database.session import get_session_factory
        settings = get_settings()
        mirror_dir = settings.logs_dir if settings.job_log_mirror_jsonl else None
        _job_log = JobLog(get_session_factory(), mirror_dir=mirror_dir)
    return _job_log


def reset_job_log(job_log: Optional[JobLog] = None) -> None:
    """Replace the global JobLog (None forces re-creation on next access)."""
    global _job_log
    _job_log = job_log
