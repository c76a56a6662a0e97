"""
Protocol events and their delivery.

Components push [ElectionEvent][bullysim.election.events.ElectionEvent] records through an
[EventDispatcher][bullysim.election.events.EventDispatcher], which forwards them synchronously, in emission
order, to every subscribed sink. A sink is any callable taking one event. Rendering, animation and textual logs
are left to sinks.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from bullysim.simulator.log import SIMULATION_LOGGER, label_node


class EventKind(Enum):
    STARTED = "started"
    MESSAGE = "message"
    ELECTED = "elected"
    FAILED = "failed"
    RECOVERED = "recovered"
    LEADERLESS = "leaderless"


class MessageType(Enum):
    ELECTION = "ELECTION"
    OK = "OK"


@dataclass(frozen=True)
class ElectionEvent:
    kind: EventKind

    timestamp: float = 0
    """Simulation time at which the event was emitted"""

    node_id: Optional[int] = None
    """Node the event is about. Unset for MESSAGE and LEADERLESS events"""

    sender_id: Optional[int] = None
    receiver_id: Optional[int] = None
    message_type: Optional[MessageType] = None

    was_leader: bool = False
    """For FAILED events, whether the node held the leader role when it failed"""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value, "timestamp": self.timestamp}
        if self.kind is EventKind.MESSAGE:
            data["sender_id"] = self.sender_id
            data["receiver_id"] = self.receiver_id
            data["message_type"] = self.message_type.value
        elif self.kind is not EventKind.LEADERLESS:
            data["node_id"] = self.node_id
        if self.kind is EventKind.FAILED:
            data["was_leader"] = self.was_leader
        return data

    def describe(self) -> str:
        if self.kind is EventKind.STARTED:
            return f"{label_node(self.node_id)} started an election"
        if self.kind is EventKind.MESSAGE:
            return f"{label_node(self.sender_id)} -> {label_node(self.receiver_id)}: {self.message_type.value}"
        if self.kind is EventKind.ELECTED:
            return f"{label_node(self.node_id)} was elected coordinator"
        if self.kind is EventKind.FAILED:
            suffix = " (coordinator)" if self.was_leader else ""
            return f"{label_node(self.node_id)} failed{suffix}"
        if self.kind is EventKind.RECOVERED:
            return f"{label_node(self.node_id)} recovered"
        return "All nodes have failed, there is no coordinator"


EventSink = Callable[[ElectionEvent], None]


class EventDispatcher:
    """
    Delivers events to subscribed sinks. A sink that raises is logged and skipped, the remaining sinks and the
    emitting component carry on.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._sinks: List[EventSink] = []
        self._clock = clock
        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.events")

    def subscribe(self, sink: EventSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: EventSink) -> bool:
        if sink in self._sinks:
            self._sinks.remove(sink)
            return True
        return False

    def emit(self, kind: EventKind, **fields) -> ElectionEvent:
        timestamp = self._clock() if self._clock is not None else 0
        event = ElectionEvent(kind, timestamp, **fields)
        for sink in list(self._sinks):
            try:
                sink(event)
            except Exception:
                self._logger.exception("Event sink %r failed while handling %s event", sink, kind.value)
        return event


class LoggingEventSink:
    """
    Sink that writes every event to a logger as a line of the simulation's event log.
    """

    LEVELS = {
        EventKind.STARTED: logging.WARNING,
        EventKind.MESSAGE: logging.INFO,
        EventKind.ELECTED: logging.INFO,
        EventKind.FAILED: logging.ERROR,
        EventKind.RECOVERED: logging.INFO,
        EventKind.LEADERLESS: logging.ERROR,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(f"{SIMULATION_LOGGER}.eventlog")

    def __call__(self, event: ElectionEvent) -> None:
        self._logger.log(self.LEVELS[event.kind], event.describe())


class RecordingEventSink:
    """
    Sink that keeps every event in memory, in delivery order.
    """

    def __init__(self):
        self.events: List[ElectionEvent] = []

    def __call__(self, event: ElectionEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> List[ElectionEvent]:
        return [event for event in self.events if event.kind is kind]

    def clear(self) -> None:
        self.events.clear()
