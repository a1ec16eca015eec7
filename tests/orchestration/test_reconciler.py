"""Tests for JobStateReconciler."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from docker_jobs.core.events import EventKind
from docker_jobs.core.timestamps import ensure_utc
from docker_jobs.engine import LaunchConfig
from docker_jobs.engine.stub import StubContainer
from docker_jobs.jobs.models import JobState
from docker_jobs.jobs.store import SqlJobStore
from docker_jobs.orchestration.reconciler import (
    JobStateReconciler,
    classify_exit,
    parse_environment,
)

LABEL = "docker_jobs.managed"
STARTED = "2024-03-01T12:00:00.000000000Z"
FINISHED = "2024-03-01T12:01:30.500000000Z"


@pytest.fixture
def reconciler(engine, store, sink) -> JobStateReconciler:
    return JobStateReconciler(engine, store, sink)


@pytest.fixture
def launched(engine, store, make_job):
    """Create a job and a running container bound to it."""

    def _launch(**job_kwargs):
        job = make_job(**job_kwargs)
        config = LaunchConfig(
            image="app:latest",
            command=job.command.split(),
            labels={LABEL: "true", "job_id": str(job.id)},
        )
        container_id = engine.run_container(f"job-{job.id}", config)
        engine.containers[container_id].started_at = STARTED
        job.docker_container_id = container_id
        store.persist(job)
        store.flush()
        return job, container_id

    return _launch


def _kinds(sink) -> list[str]:
    return [event.event_type for event in sink.history]


class TestClassifyExit:
    @pytest.mark.parametrize(
        ("exit_code", "current", "expected"),
        [
            (0, JobState.RUNNING, JobState.FINISHED),
            (0, JobState.STOPPED, JobState.FINISHED),
            (137, JobState.STOPPED, JobState.STOPPED),
            (137, JobState.RUNNING, JobState.FAILED),
            (1, JobState.RUNNING, JobState.FAILED),
            (1, JobState.STOPPED, JobState.FAILED),
            (None, JobState.RUNNING, JobState.FAILED),
        ],
    )
    def test_table(self, exit_code, current, expected):
        assert classify_exit(exit_code, current) is expected


class TestParseEnvironment:
    def test_split_on_first_equals(self):
        assert parse_environment(["A=1", "DSN=x=y", "EMPTY=", "BROKEN", "=nameless"]) == {
            "A": "1",
            "DSN": "x=y",
            "EMPTY": "",
        }

    def test_empty(self):
        assert parse_environment([]) == {}


class TestReconcileRunning:
    def test_pending_becomes_running(self, reconciler, launched, sink):
        job, container_id = launched()
        reconciler.reconcile_running(container_id)
        assert job.job_state is JobState.RUNNING
        assert sink.history == []

    def test_environment_captured_once(self, reconciler, launched, engine):
        job, container_id = launched()
        engine.containers[container_id].env = ["PATH=/bin", "DSN=a=b", "JUNK"]
        reconciler.reconcile_running(container_id)
        assert job.environment_variables == {"PATH": "/bin", "DSN": "a=b"}

        engine.containers[container_id].env = ["PATH=/changed"]
        reconciler.reconcile_running(container_id)
        assert job.environment_variables == {"PATH": "/bin", "DSN": "a=b"}

    def test_empty_environment_not_recorded(self, reconciler, launched, engine):
        job, container_id = launched()
        engine.containers[container_id].env = []
        reconciler.reconcile_running(container_id)
        assert job.environment_variables is None

    def test_eager_logs(self, reconciler, launched, engine):
        job, container_id = launched()
        engine.set_logs(container_id, output="line 1\n", error_output="warn\n")
        reconciler.reconcile_running(container_id)
        assert job.output == "line 1\n"
        assert job.error_output == "warn\n"

        engine.set_logs(container_id, output="line 1\nline 2\n")
        reconciler.reconcile_running(container_id)
        assert job.output == "line 1\nline 2\n"
        assert job.error_output == ""

    def test_lazy_logs(self, engine, store, sink, launched):
        reconciler = JobStateReconciler(engine, store, sink, eager_log_update=False)
        job, container_id = launched()
        engine.set_logs(container_id, output="line 1\n")
        reconciler.reconcile_running(container_id)
        assert job.output is None

    def test_stopped_marker_preserved(self, reconciler, launched, store):
        job, container_id = launched(state=JobState.STOPPED)
        reconciler.reconcile_running(container_id)
        assert job.job_state is JobState.STOPPED

    def test_started_at_recorded(self, reconciler, launched):
        job, container_id = launched()
        reconciler.reconcile_running(container_id)
        assert ensure_utc(job.started_at) == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def test_started_at_not_overwritten(self, reconciler, launched):
        original = datetime(2024, 1, 1, tzinfo=UTC)
        job, container_id = launched(started_at=original)
        reconciler.reconcile_running(container_id)
        assert ensure_utc(job.started_at) == original

    def test_unparseable_started_at_ignored(self, reconciler, launched, engine):
        job, container_id = launched()
        engine.containers[container_id].started_at = "not-a-date"
        reconciler.reconcile_running(container_id)
        assert job.started_at is None
        assert job.job_state is JobState.RUNNING


class TestReconcileExited:
    def test_exit_zero_finishes(self, reconciler, launched, engine, sink):
        job, container_id = launched(
            state=JobState.RUNNING, started_at=datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        )
        engine.set_logs(container_id, output="done\n", error_output="")
        engine.exit_container(container_id, 0, finished_at=FINISHED)

        reconciler.reconcile_exited(container_id)

        assert job.job_state is JobState.FINISHED
        assert job.exit_code == 0
        assert job.error_message is None
        assert job.output == "done\n"
        assert ensure_utc(job.stopped_at) == datetime(2024, 3, 1, 12, 1, 30, 500000, tzinfo=UTC)
        assert job.runtime == 90
        assert container_id in engine.deleted
        assert _kinds(sink) == [EventKind.FINISHED.value]

    def test_runtime_uses_fallback(self, reconciler, launched, engine):
        job, container_id = launched(
            state=JobState.RUNNING,
            started_at_fallback=datetime(2024, 3, 1, 12, 1, 0, tzinfo=UTC),
        )
        engine.exit_container(container_id, 0, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)
        assert job.runtime == 30

    def test_runtime_never_negative(self, reconciler, launched, engine):
        job, container_id = launched(
            state=JobState.RUNNING,
            started_at_fallback=datetime(2024, 3, 1, 13, 0, 0, tzinfo=UTC),
        )
        engine.exit_container(container_id, 0, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)
        assert job.runtime == 0

    def test_unparseable_finish_time(self, reconciler, launched, engine):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 0, finished_at="garbage")
        reconciler.reconcile_exited(container_id)
        assert job.stopped_at is None
        assert job.runtime is None
        assert job.job_state is JobState.FINISHED

    def test_nonzero_exit_fails_with_engine_error(self, reconciler, launched, engine, sink):
        job, container_id = launched(state=JobState.RUNNING)
        engine.set_logs(container_id, error_output="Killed\n")
        engine.exit_container(container_id, 1, error="oom", finished_at=FINISHED)

        reconciler.reconcile_exited(container_id)

        assert job.job_state is JobState.FAILED
        assert job.exit_code == 1
        assert job.error_message == "oom"
        assert job.error_output == "Killed\n"
        assert _kinds(sink) == [EventKind.FAILED.value]
        assert sink.history[0].payload["message"] == "job exited with code: 1"

    def test_nonzero_exit_without_error_text(self, reconciler, launched, engine):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 2, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)
        assert job.job_state is JobState.FAILED
        assert job.error_message is None

    def test_137_without_marker_fails(self, reconciler, launched, engine, sink):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 137, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)
        assert job.job_state is JobState.FAILED
        assert _kinds(sink) == [EventKind.FAILED.value]

    def test_137_with_marker_stops(self, reconciler, launched, engine, store, sink):
        job, container_id = launched(state=JobState.RUNNING)
        job.state = JobState.STOPPED
        store.persist(job)
        store.flush()
        engine.exit_container(container_id, 137, finished_at=FINISHED)

        reconciler.reconcile_exited(container_id)

        assert job.job_state is JobState.STOPPED
        assert job.exit_code == 137
        assert job.stopped_at is not None
        assert job.runtime is not None
        assert _kinds(sink) == [EventKind.STOPPED.value]

    def test_137_reload_happens_before_mutation(self, engine, sink, db_session, launched):
        class RecordingStore(SqlJobStore):
            seen = None

            def refresh(self, job):
                RecordingStore.seen = (job.stopped_at, job.exit_code, job.output)
                super().refresh(job)

        store = RecordingStore(db_session)
        reconciler = JobStateReconciler(engine, store, sink)
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 137, finished_at=FINISHED)

        reconciler.reconcile_exited(container_id)

        assert RecordingStore.seen == (None, None, None)
        assert job.stopped_at is not None

    def test_delete_failure_still_terminal(self, reconciler, launched, engine, sink):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 0, finished_at=FINISHED)
        engine.fail_delete = True

        reconciler.reconcile_exited(container_id)

        assert job.job_state is JobState.FINISHED
        assert container_id in engine.containers
        assert len(sink.history) == 1

    def test_reprocessing_is_idempotent(self, reconciler, launched, engine, sink):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 1, error="oom", finished_at=FINISHED)
        engine.fail_delete = True
        reconciler.reconcile_exited(container_id)

        engine.fail_delete = False
        engine.exit_container(container_id, 0, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)

        assert job.job_state is JobState.FAILED
        assert job.exit_code == 1
        assert len(sink.history) == 1
        assert container_id in engine.deleted

    def test_already_deleted_container_skipped(self, reconciler, launched, engine, sink):
        job, container_id = launched(state=JobState.RUNNING)
        engine.exit_container(container_id, 0, finished_at=FINISHED)
        reconciler.reconcile_exited(container_id)

        assert reconciler.reconcile_exited(container_id) is None
        assert len(sink.history) == 1


class TestUncorrelatedContainers:
    def test_missing_label(self, reconciler, engine, sink):
        engine.add_container(
            StubContainer(id="orphan", name="o", image="x", phase="exited", exit_code=0, labels={LABEL: "true"})
        )
        assert reconciler.reconcile_exited("orphan") is None
        assert reconciler.reconcile_running("orphan") is None
        assert sink.history == []

    def test_unknown_job(self, reconciler, engine, sink):
        engine.add_container(
            StubContainer(
                id="ghost", name="g", image="x", phase="exited", exit_code=0,
                labels={LABEL: "true", "job_id": "999"},
            )
        )
        assert reconciler.reconcile_exited("ghost") is None
        assert "ghost" in engine.containers
        assert sink.history == []
