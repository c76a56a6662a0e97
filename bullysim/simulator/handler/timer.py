import logging
from typing import Callable, Dict

from bullysim.simulator.event import Event, EventLoop
from bullysim.simulator.log import SIMULATION_LOGGER


class TimerException(Exception):
    pass


class TimerHandler:
    """
    Provides named timers on top of the event loop. Scheduling a timer whose name is already pending replaces the
    pending one, so at most one timer per name is ever outstanding. Cancelled timers stay in the event queue but
    do nothing when they fire.
    """

    _event_loop: EventLoop

    def __init__(self):
        self._injected = False
        self._timers: Dict[str, Event] = {}
        self._logger = logging.getLogger(f"{SIMULATION_LOGGER}.timer")

    def inject(self, event_loop: EventLoop) -> None:
        self._injected = True
        self._event_loop = event_loop

    def current_time(self) -> float:
        if not self._injected:
            raise TimerException("Error reading time: timer handler is not injected")
        return self._event_loop.current_time

    def schedule_timer(self, timer: str, timestamp: float, callback: Callable[[str], None]) -> None:
        """
        Schedules a timer.

        Args:
            timer: Name of the timer, passed back to the callback when it fires
            timestamp: Absolute simulation time in seconds when the timer fires
            callback: Called with the timer name when it fires
        """
        if not self._injected:
            raise TimerException("Error scheduling timer: timer handler is not injected")

        def fire():
            if self._timers.get(timer) is not event:
                return
            del self._timers[timer]
            self._logger.debug("Timer '%s' fired at %.3f", timer, self._event_loop.current_time)
            callback(timer)

        event = self._event_loop.schedule_event(timestamp, fire, f"Timer {timer}")
        self._timers[timer] = event

    def cancel_timer(self, timer: str) -> bool:
        """
        Cancels a pending timer.

        Returns:
            True if a pending timer was cancelled, False if no timer with that name was pending
        """
        if self._timers.pop(timer, None) is None:
            return False
        self._logger.debug("Timer '%s' cancelled", timer)
        return True

    def is_scheduled(self, timer: str) -> bool:
        return timer in self._timers
