"""
Event Bus implementation for mobility event routing.

The Event Bus is a simple, synchronous dispatcher for simulation events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Callable, Hashable, List
import logging

from epidemic_spaces.core.errors import PreconditionError

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """
    A domain event in the simulation.

    Attributes:
        type: Event type (e.g., "person.entered_building", "pandemic.infected")
        source: Event source (e.g., "transit", "pandemic")
        timestamp: Simulated time at which the event occurred
        person_id: Optional person this event relates to
        payload: Event-specific data
    """

    type: str
    source: str
    timestamp: datetime
    person_id: Optional[Hashable] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class EventFilter:
    """
    Filter for event subscriptions.

    Allows subscribers to filter events by type and by person.
    """

    def __init__(
        self,
        event_type: Optional[str] = None,
        person_id: Optional[Hashable] = None,
    ):
        """
        Initialize an event filter.

        Args:
            event_type: Filter by event type (None = all types)
            person_id: Filter by person (None = all persons)
        """
        self.event_type = event_type
        self.person_id = person_id

    def matches(self, event: Event) -> bool:
        """
        Check if an event matches this filter.

        Args:
            event: The event to check

        Returns:
            True if the event matches the filter
        """
        if self.event_type and event.type != self.event_type:
            return False

        if self.person_id is not None and event.person_id != self.person_id:
            return False

        return True

    def __repr__(self) -> str:
        return f"EventFilter(event_type={self.event_type!r}, person_id={self.person_id!r})"


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Simple, synchronous event bus for simulation events.

    Handlers are wrapped in try/except to prevent one bad module from crashing the
    simulation. PreconditionError is the exception: it marks an integration bug and
    is re-raised so the run aborts.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._handlers: List[tuple[EventFilter, EventHandler]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_filter: Optional[EventFilter] = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Callable that receives Event objects
            event_filter: Optional filter for events (None = receive all events)
        """
        if event_filter is None:
            event_filter = EventFilter()

        self._handlers.append((event_filter, handler))
        logger.debug(f"Subscribed handler {handler.__name__} with filter {event_filter}")

    def publish(self, event: Event) -> None:
        """
        Publish an event to all matching subscribers.

        Handlers are called synchronously, in subscription order.

        Args:
            event: The event to publish

        Raises:
            PreconditionError: If a handler detected an integration bug
        """
        logger.debug(f"Publishing event: {event.type} from {event.source} at {event.timestamp}")

        # Snapshot so handlers may subscribe while we dispatch
        for event_filter, handler in list(self._handlers):
            if event_filter.matches(event):
                try:
                    handler(event)
                except PreconditionError:
                    raise
                except Exception as e:
                    logger.error(
                        f"Error in event handler {handler.__name__} "
                        f"for event {event.type}: {e}",
                        exc_info=True,
                    )

    def unsubscribe(self, handler: EventHandler) -> None:
        """
        Unsubscribe a handler from all events.

        Args:
            handler: The handler to unsubscribe
        """
        self._handlers = [(f, h) for f, h in self._handlers if h != handler]
        logger.debug(f"Unsubscribed handler {handler.__name__}")
