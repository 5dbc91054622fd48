"""
Execution Events and the Event Sink.

Every observable step of a run is an ``ExecutionEvent``: a node starting,
finishing, failing, or handing data to a successor. Events are appended
to an ``EventSink`` in order and never mutated; subscribers receive each
event as it is emitted (live UI streaming, persistence).
"""

from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import itertools
import logging


logger = logging.getLogger(__name__)


WORKFLOW_NODE_ID = "workflow"
WORKFLOW_NODE_NAME = "Workflow"


class EventKind(str, Enum):
    """Kinds of execution events."""
    START = "start"
    SUCCESS = "success"
    ERROR = "error"
    DATA = "data"


_event_ids = itertools.count(1)


@dataclass(frozen=True)
class ExecutionEvent:
    """A single entry in a run's event log."""
    node_id: str
    node_name: str
    kind: EventKind
    message: str
    payload: Any = None
    duration_ms: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: f"evt-{next(_event_ids)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "kind": self.kind.value,
            "message": self.message,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
            "durationMs": self.duration_ms,
        }


EventCallback = Callable[[ExecutionEvent], None]


class EventSink:
    """
    Ordered, append-only event log with subscribers.

    Subscribers are plain callables invoked synchronously on ``emit``.
    A failing subscriber is logged and does not affect the run.

    Usage:
        sink = EventSink()
        unsubscribe = sink.subscribe(lambda event: print(event.message))
        ...
        unsubscribe()
    """

    def __init__(self):
        self._events: List[ExecutionEvent] = []
        self._subscribers: List[EventCallback] = []

    @property
    def events(self) -> List[ExecutionEvent]:
        """A copy of the events emitted so far."""
        return list(self._events)

    def emit(self, event: ExecutionEvent) -> ExecutionEvent:
        """Append an event and notify subscribers."""
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Event subscriber failed: {e}")
        return event

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def clear(self) -> None:
        """Drop all recorded events; subscribers stay registered."""
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

