"""Orchestration: launch, observe and reconcile job containers.

Modules
-------
launch      build_launch_config, container_name
registry    ContainerRegistry -- per-cycle running/exited partition
reconciler  JobStateReconciler, classify_exit, parse_environment
loop        OrchestrationLoop, check_requirements
stop        stop_job -- out-of-band stop entry point
"""

from docker_jobs.orchestration.launch import build_launch_config, container_name
from docker_jobs.orchestration.loop import CycleResult, OrchestrationLoop, check_requirements
from docker_jobs.orchestration.reconciler import (
    JobStateReconciler,
    classify_exit,
    parse_environment,
)
from docker_jobs.orchestration.registry import ContainerRegistry
from docker_jobs.orchestration.stop import stop_job

__all__ = [
    "ContainerRegistry",
    "CycleResult",
    "JobStateReconciler",
    "OrchestrationLoop",
    "build_launch_config",
    "check_requirements",
    "classify_exit",
    "container_name",
    "parse_environment",
    "stop_job",
]
