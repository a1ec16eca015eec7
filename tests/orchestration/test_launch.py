"""Tests for launch configuration and container naming."""

import hashlib

import pytest

from docker_jobs.core.errors import ConfigError, MissingConfigError
from docker_jobs.jobs.models import Job
from docker_jobs.orchestration.launch import build_launch_config, container_name


def _build(job: Job, **kwargs):
    kwargs.setdefault("default_image", "app:latest")
    kwargs.setdefault("management_label", "docker_jobs.managed")
    return build_launch_config(job, **kwargs)


class TestBuildLaunchConfig:
    def test_defaults(self):
        job = Job(id=42, command="python run.py --name 'big report'")
        config = _build(job, working_dir="/app")
        assert config.image == "app:latest"
        assert config.command == ["python", "run.py", "--name", "big report"]
        assert config.working_dir == "/app"
        assert config.labels == {"docker_jobs.managed": "true", "job_id": "42"}
        assert config.env == {}

    def test_job_image_wins(self):
        config = _build(Job(id=1, command="true", docker_image="custom:1"))
        assert config.image == "custom:1"

    def test_launch_environment_stringified(self):
        config = _build(Job(id=1, command="true", launch_environment={"RETRIES": 3}))
        assert config.env == {"RETRIES": "3"}

    def test_no_image_at_all(self):
        with pytest.raises(MissingConfigError):
            _build(Job(id=1, command="true"), default_image="")

    def test_unbalanced_quotes(self):
        with pytest.raises(ConfigError):
            _build(Job(id=1, command="echo 'oops"))

    def test_empty_command(self):
        with pytest.raises(ConfigError):
            _build(Job(id=1, command="   "))

    def test_to_dict(self):
        data = _build(Job(id=5, command="echo hi", launch_environment={"A": "b"})).to_dict()
        assert data["Cmd"] == ["echo", "hi"]
        assert data["Env"] == ["A=b"]
        assert data["Labels"]["job_id"] == "5"


class TestContainerName:
    def test_md5_of_command_and_id(self):
        config = _build(Job(id=42, command="python run.py --fast"))
        expected = hashlib.md5(b"python run.py --fast-42").hexdigest()
        assert container_name(config, 42) == expected

    def test_differs_per_job(self):
        config = _build(Job(id=1, command="echo hi"))
        assert container_name(config, 1) != container_name(config, 2)
