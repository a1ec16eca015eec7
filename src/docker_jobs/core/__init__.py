"""docker-jobs core -- errors, logging, settings, persistence and events.

Layout::

    errors.py       Structured error hierarchy (DockerJobsError)
    logging.py      structlog configuration and context helpers
    settings.py     DockerJobsSettings (pydantic-settings)
    timestamps.py   UTC helpers and engine timestamp parsing (stdlib-only)
    orm/            SQLAlchemy 2.0 base, engine factory and sessions
    events/         Event model, EventSink protocol, in-memory sink
"""
