"""Job entity and persistence."""

from docker_jobs.jobs.models import TERMINAL_STATES, Job, JobState
from docker_jobs.jobs.store import JobStore, SqlJobStore

__all__ = ["Job", "JobState", "JobStore", "SqlJobStore", "TERMINAL_STATES"]
