import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass(order=True)
class Event:
    """
    An event scheduled in the simulation. Events are ordered by timestamp and, for equal timestamps, by the order
    in which they were scheduled.
    """

    timestamp: float
    """Simulation time in seconds at which the event fires"""

    sequence: int
    """Tie-breaker preserving insertion order between events with the same timestamp"""

    callback: Callable[[], None] = field(compare=False)
    """Called when the event is executed"""

    context: str = field(default="", compare=False)
    """Free-form label identifying who scheduled the event, used for logging"""


class EventLoop:
    """
    Priority queue of simulation events. The loop does not execute events by itself, the
    [Simulator][bullysim.simulator.simulation.Simulator] pops them and advances the clock.
    """

    def __init__(self):
        self._events: List[Event] = []
        self._counter = itertools.count()
        self.current_time: float = 0

    def schedule_event(self, timestamp: float, callback: Callable[[], None], context: str = "") -> Event:
        """
        Schedules a new event. Timestamps in the past are clamped to the current time.

        Args:
            timestamp: Simulation time in seconds when the event should fire
            callback: Function called when the event fires
            context: Label identifying the origin of the event

        Returns:
            The scheduled event
        """
        event = Event(max(timestamp, self.current_time), next(self._counter), callback, context)
        heapq.heappush(self._events, event)
        return event

    def peek_event(self) -> Optional[Event]:
        if not self._events:
            return None
        return self._events[0]

    def pop_event(self) -> Event:
        """
        Removes and returns the next event. Does not advance the clock.

        Raises:
            IndexError: If there are no events queued
        """
        return heapq.heappop(self._events)

    def __len__(self) -> int:
        return len(self._events)
