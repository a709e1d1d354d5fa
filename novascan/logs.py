"""Logging setup with a per-run trace id."""

import logging
import uuid

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s"


class TraceIdFilter(logging.Filter):
    """Stamps every record with the trace id of the current run."""

    def __init__(self, trace_id: str):
        super().__init__()
        self.trace_id = trace_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = self.trace_id
        return True


def configure_logging(level: str = "info", trace_id: str | None = None) -> str:
    """
    Configure root logging for a run.

    Unknown level names fall back to INFO.

    Returns:
        The trace id attached to all log records.
    """
    trace_id = trace_id or uuid.uuid4().hex[:8]
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)
    for handler in logging.getLogger().handlers:
        handler.addFilter(TraceIdFilter(trace_id))

    return trace_id
