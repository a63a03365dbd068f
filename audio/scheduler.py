"""Frame-driven timers for Historical Friction.

Deferred work (narration ticks, melody steps) runs on a virtual clock that
the host advances once per frame, so every continuation executes on the
main loop. There are no threads.
"""

from typing import Callable, List, Optional

from audio.logging import audio_log
from audio.audio_logger import audio_log as event_log

MIN_INTERVAL = 0.001


class TimerHandle:
    """A pending one-shot or periodic callback."""

    def __init__(self, due: float, callback: Callable, args: tuple,
                 interval: Optional[float] = None, name: str = '', sequence: int = 0):
        self.due = due
        self.callback = callback
        self.args = args
        self.interval = interval
        self.name = name or getattr(callback, '__name__', 'timer')
        self.sequence = sequence
        self.cancelled = False

    @property
    def periodic(self) -> bool:
        return self.interval is not None

    def cancel(self):
        self.cancelled = True


class Scheduler:
    """Virtual-time timer queue advanced by the frame loop."""

    def __init__(self):
        self.now = 0.0
        self._timers: List[TimerHandle] = []
        self._sequence = 0

    def call_later(self, delay: float, callback: Callable, *args, name: str = '') -> TimerHandle:
        """Run callback(*args) once, delay seconds from now."""
        return self._add(max(0.0, delay), callback, args, None, name)

    def call_every(self, interval: float, callback: Callable, *args, name: str = '') -> TimerHandle:
        """Run callback(*args) every interval seconds, first after one interval."""
        interval = max(MIN_INTERVAL, interval)
        return self._add(interval, callback, args, interval, name)

    def _add(self, delay, callback, args, interval, name) -> TimerHandle:
        self._sequence += 1
        handle = TimerHandle(self.now + delay, callback, args, interval, name, self._sequence)
        self._timers.append(handle)
        event_log.scheduler(f"armed {handle.name} in {delay:.2f}s")
        return handle

    def cancel(self, handle: TimerHandle):
        handle.cancel()
        if handle in self._timers:
            self._timers.remove(handle)

    def cancel_all(self) -> int:
        """Cancel every pending timer, one-shot and periodic.

        Returns:
            Number of timers cancelled
        """
        count = len(self._timers)
        for handle in self._timers:
            handle.cancel()
        self._timers = []
        if count:
            event_log.scheduler(f"cancelled {count} timer(s)")
        return count

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, dt: float):
        """Advance the clock and fire everything that came due, in order.

        Callbacks may arm or cancel timers, including cancel_all().
        The clock stands at each timer's due time while it fires, so
        timers armed from a callback count from that moment.
        Periodic timers that fell behind skip the missed ticks.
        """
        end = self.now + max(0.0, dt)
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= end]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.sequence))
            self.now = max(self.now, timer.due)
            if timer.periodic:
                timer.due += timer.interval
                if timer.due <= end:
                    timer.due = end + timer.interval
            else:
                self._timers.remove(timer)
                timer.cancelled = True
            self._fire(timer)
        self.now = end
        self._timers = [t for t in self._timers if not t.cancelled]

    def _fire(self, timer: TimerHandle):
        try:
            timer.callback(*timer.args)
        except Exception as e:
            audio_log('WARNING', "Timer callback failed", {
                'timer': timer.name,
                'error': str(e)
            })
