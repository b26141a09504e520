import json
import logging
from datetime import UTC, datetime


class StructuredLogger:
    """Emits one JSON object per session event through the standard logging
    system. ``configure_logging`` routes them to a handler that writes the bare
    JSON line.
    """

    def __init__(self, name: str = "catviewer.events"):
        self._logger = logging.getLogger(name)

    def log_event(self, event: str, level: int = logging.INFO, **fields) -> None:
        """Emit a structured event, e.g.

        events.log_event("page_served", page=0, size=30, returned=30)
        """
        payload = {"timestamp": datetime.now(UTC).isoformat(), "event": event}
        payload.update(fields)

        try:
            message = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            message = f"{event} {fields}"
        self._logger.log(level, message)


events = StructuredLogger()

__all__ = ["events", "StructuredLogger"]
