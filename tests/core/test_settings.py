"""Tests for DockerJobsSettings."""

import os

import pytest
from pydantic import ValidationError

from docker_jobs.core.settings import DockerJobsSettings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("DOCKER_JOBS_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self):
        settings = DockerJobsSettings()
        assert settings.queue == "default"
        assert settings.concurrency_limit == 4
        assert settings.poll_interval == 1.0
        assert settings.eager_log_update is True
        assert settings.management_label == "docker_jobs.managed"
        assert settings.container_working_dir == "/app"
        assert settings.docker_binary == "docker"
        assert settings.docker_host is None


class TestEnvironment:
    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("DOCKER_JOBS_DEFAULT_IMAGE_ID", "busybox:latest")
        monkeypatch.setenv("DOCKER_JOBS_CONCURRENCY_LIMIT", "8")
        monkeypatch.setenv("DOCKER_JOBS_EAGER_LOG_UPDATE", "false")
        settings = DockerJobsSettings()
        assert settings.default_image_id == "busybox:latest"
        assert settings.concurrency_limit == 8
        assert settings.eager_log_update is False

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("DOCKER_JOBS_QUEUE=reports\n")
        assert DockerJobsSettings().queue == "reports"

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            DockerJobsSettings(concurrency_limit=0)


class TestJsonLogs:
    @pytest.mark.parametrize(
        ("log_format", "expected"),
        [("auto", None), ("json", True), ("console", False)],
    )
    def test_mapping(self, log_format, expected):
        assert DockerJobsSettings(log_format=log_format).json_logs is expected
