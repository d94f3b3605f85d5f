"""
Database models. Importing this package registers every table on Base.metadata.
"""
from summarizer.database.models.job_event import JobEvent
from summarizer.database.models.job_state import JobState

__all__ = ["JobEvent", "JobState"]
