"""
Structured error types for docker-jobs.

Every error raised by the orchestrator carries a category, an explicit
retry flag and structured context, so the CLI and the loop can decide
what is fatal without parsing messages.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     DockerJobsError                          │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError            EngineError          JobError        │
        │  (CONFIG)               (ENGINE)             (JOB)           │
        │      │                      │                    │           │
        │  MissingConfigError    EngineUnavailableError  JobNotFound   │
        │  ImageNotFoundError    ContainerNotFoundError  JobStateError │
        │                        ContainerLaunchError                  │
        │                                                              │
        │  StoreError (DATABASE, retryable)                            │
        └─────────────────────────────────────────────────────────────┘

Taxonomy:
    - Startup errors (``EngineUnavailableError``, ``ImageNotFoundError``)
      abort the process before the loop starts.
    - ``ContainerLaunchError`` aborts the current admission batch only.
    - A ``ConfigError`` from a job's launch configuration fails that job
      only; admission carries on with the next one.
    - ``JobNotFoundError`` is reported by the stop entry point.

Usage:
    from docker_jobs.core.errors import ImageNotFoundError

    if not engine.image_exists(image):
        raise ImageNotFoundError(image)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Missing config, invalid settings
    ENGINE = "ENGINE"             # Container engine unreachable or failing
    DATABASE = "DATABASE"         # Job store errors
    JOB = "JOB"                   # Job lookup or lifecycle violations
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set end up in ``to_dict()``; anything without a
    dedicated field goes into ``metadata``.
    """

    job_id: int | str | None = None
    container_id: str | None = None
    queue: str | None = None
    image: str | None = None
    command: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["job_id", "container_id", "queue", "image", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DockerJobsError(Exception):
    """
    Base exception for all docker-jobs errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.

    Examples:
        >>> error = DockerJobsError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(job_id=42).context.job_id
        42
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DockerJobsError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ContainerLaunchError("could not run job").with_context(job_id=42)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(DockerJobsError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class ImageNotFoundError(ConfigError):
    """The configured default image does not exist on the engine host."""

    def __init__(self, image: str):
        self.image = image
        super().__init__(f'"{image}" docker image does not exist.')
        self.context.image = image


# =============================================================================
# ENGINE ERRORS
# =============================================================================


class EngineError(DockerJobsError):
    """The container engine rejected or failed a request."""

    default_category = ErrorCategory.ENGINE
    default_retryable = False


class EngineUnavailableError(EngineError):
    """The container engine could not be reached."""

    default_retryable = True


class ContainerNotFoundError(EngineError):
    """The engine does not know the requested container."""

    def __init__(self, container_id: str):
        self.container_id = container_id
        super().__init__(f"No such container: {container_id}")
        self.context.container_id = container_id


class ContainerLaunchError(EngineError):
    """The engine did not return a container id for a launch request."""


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(DockerJobsError):
    """The job store could not read or write."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# =============================================================================
# JOB ERRORS
# =============================================================================


class JobError(DockerJobsError):
    """Job lookup or lifecycle error."""

    default_category = ErrorCategory.JOB
    default_retryable = False


class JobNotFoundError(JobError):
    """No job with the given id exists in the store."""

    def __init__(self, job_id: int | str):
        self.job_id = job_id
        super().__init__(f"No such job: {job_id}")
        self.context.job_id = job_id


class JobStateError(JobError):
    """A job invariant would be violated."""


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DockerJobsError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DockerJobsError",
    "ConfigError",
    "MissingConfigError",
    "ImageNotFoundError",
    "EngineError",
    "EngineUnavailableError",
    "ContainerNotFoundError",
    "ContainerLaunchError",
    "StoreError",
    "JobError",
    "JobNotFoundError",
    "JobStateError",
    "is_retryable",
]
