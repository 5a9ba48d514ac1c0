"""Fire-and-forget analytics events.

Events are written twice: as a structured log line that downstream log
pipelines can ship to the analytics warehouse, and as an OpenTelemetry
event on the active span so traces show what the request produced.
Capturing an event never raises and never waits on the network.
"""

from typing import Any

from opentelemetry import trace

from ..logging import get_logger
from .config import add_span_event

logger = get_logger(__name__)

USAGE_LIMIT_HIT = "usage_limit_hit"
GENERATION_DELETED = "generation_deleted"


class AnalyticsClient:
    """Analytics sink keyed by the external user id."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def capture(
        self,
        distinct_id: str,
        event: str,
        properties: dict[str, Any] | None = None,
    ) -> None:
        """Record an analytics event.

        Args:
            distinct_id: External identity id of the user the event belongs to.
            event: Event name (e.g. "generation_created").
            properties: Event properties. Must not contain generated content.
        """
        if not self.enabled:
            return
        try:
            props = dict(properties or {})
            logger.info("analytics_event", analytics_event=event, distinct_id=distinct_id, **props)
            add_span_event(
                trace.get_current_span(),
                event,
                {"distinct_id": distinct_id, **props},
            )
        except Exception:
            logger.warning("Failed to capture analytics event", analytics_event=event, exc_info=True)


# Global analytics client instance
_analytics: AnalyticsClient | None = None


def get_analytics() -> AnalyticsClient:
    """Get the global analytics client instance."""
    global _analytics
    if _analytics is None:
        _analytics = AnalyticsClient()
    return _analytics
