"""docker-jobs -- single-node container job orchestrator.

Pending jobs are launched as labeled containers under a concurrency
ceiling; a poll loop reconciles each job's state from the container
engine's inspection output until the container exits.
"""

__version__ = "0.1.0"
