"""
Implement the run loop that drives timers.

A run loop owns one worker thread and a queue of timers sorted by
fire date. The thread sleeps until the earliest fire date, fires every
timer that is due, reschedules repeating timers and goes back to sleep.
All timer callbacks of a loop execute on its thread, one at a time.

Every timer is added to a loop in one or more modes. The loop runs in
exactly one mode at a time and only fires timers registered for that
mode, or for RunLoopMode.COMMON. Timers that become due while the loop
runs in another mode wait until the loop switches to a matching mode.
"""

# pylint: disable=consider-using-f-string, invalid-name
import enum
import logging
from threading import Thread, Event, Lock, RLock, current_thread
import time
from sortedcontainers import SortedDict

logger = logging.getLogger(__name__)


class RunLoopMode(enum.Enum):
    """Scheduling categories a timer can participate in."""

    DEFAULT = "default"
    EVENT_TRACKING = "event_tracking"
    MODAL_PANEL = "modal_panel"
    # pseudo-mode: timers added in COMMON fire in every mode
    COMMON = "common"


class RunLoop(Thread):
    """
    Worker thread firing timers at their fire dates.

    Arguments:
        name - name of the worker thread.
        daemon - daemon flag of the worker thread.

    Attributes:
        events - sorted dict mapping fire dates to lists of timers
        modes - dict mapping scheduled timers to their sets of modes
        deferred - due timers waiting for the loop to switch modes
        mutex - lock protecting events, modes and deferred
        dispatch_mutex - lock held while a timer callback runs
    """

    _main = None
    _main_mutex = Lock()

    def __init__(self, name=None, daemon=None):
        Thread.__init__(self, name=name, daemon=daemon)
        self.timer_event = Event()

        # sorted dict for keeping the queue of wake-up events
        self.events = SortedDict()
        self.modes = {}
        self.deferred = []
        self.current_mode = RunLoopMode.DEFAULT

        self.mutex = Lock()
        # Reentrant, so that callbacks may invalidate timers
        self.dispatch_mutex = RLock()

        # Loop exits when self.running is set to False
        self.running = True

    @classmethod
    def main(cls):
        """
        Return the run loop shared by the process.

        The loop is created and started on first use. Its thread is a
        daemon, so it does not keep the interpreter alive. If the shared
        loop has been shut down, a new one is started.
        """
        cls._main_mutex.acquire()
        try:
            if cls._main is None or not cls._main.running:
                cls._main = cls(name="weak-timers-main", daemon=True)
                cls._main.start()
                logger.debug("Started main run loop")
            return cls._main
        finally:
            cls._main_mutex.release()

    @property
    def mode(self):
        """Mode the loop is currently running in."""
        return self.current_mode

    def switch_mode(self, mode):
        """
        Switch the loop to another mode.

        Deferred timers registered for the new mode fire as soon as the
        loop thread wakes up.

        Exceptions:
            ValueError - mode is not a RunLoopMode, or is the COMMON pseudo-mode
        """
        if not isinstance(mode, RunLoopMode):
            raise ValueError("%% Unknown run loop mode: %r" % (mode,))
        if mode is RunLoopMode.COMMON:
            raise ValueError("%% The loop can't run in the common pseudo-mode")
        self.current_mode = mode
        logger.debug("Run loop %s switched to mode %s", self.name, mode.value)
        self.timer_event.set()

    def add_timer(self, timer, mode=RunLoopMode.COMMON):
        """
        Schedule a timer on the loop.

        Adding an invalid timer does nothing. Adding a timer that is
        already scheduled on this loop adds the mode to its mode set.

        Arguments:
            timer - Timer to schedule
            mode - RunLoopMode the timer participates in

        Exceptions:
            ValueError - unknown mode, or the timer belongs to another loop
        """
        if not isinstance(mode, RunLoopMode):
            raise ValueError("%% Unknown run loop mode: %r" % (mode,))
        if not timer.is_valid:
            logger.debug("Ignoring invalid timer %r", timer)
            return

        self.mutex.acquire()
        try:
            if timer.run_loop is not None and timer.run_loop is not self:
                raise ValueError("%% Timer is already scheduled on another run loop")
            if timer in self.modes:
                self.modes[timer].add(mode)
            else:
                timer.run_loop = self
                self.modes[timer] = {mode}
                self.events.setdefault(timer.fire_date, []).append(timer)
                logger.debug("Scheduled %r in mode %s", timer, mode.value)
        finally:
            self.mutex.release()
        # ping the loop so it recomputes its wait time
        self.timer_event.set()

    def remove_timer(self, timer):
        """
        Remove a timer from the loop.

        Waits for a callback of the timer that is currently running on
        another thread, so that no fire starts after the method returns.
        """
        self.dispatch_mutex.acquire()
        try:
            self.mutex.acquire()
            try:
                if self.modes.pop(timer, None) is None:
                    return
                timers = self.events.get(timer.fire_date)
                if timers is not None and timer in timers:
                    timers.remove(timer)
                    # delete entry if no more timers for the date
                    if len(timers) == 0:
                        del self.events[timer.fire_date]
                if timer in self.deferred:
                    self.deferred.remove(timer)
            finally:
                self.mutex.release()
        finally:
            self.dispatch_mutex.release()
        self.timer_event.set()

    def scheduled_timers(self):
        """Return a list of valid timers waiting on the loop, deferred ones included."""
        self.mutex.acquire()
        try:
            return [timer for timer in self.modes if timer.is_valid]
        finally:
            self.mutex.release()

    def _matches(self, timer):
        modes = self.modes.get(timer, ())
        return RunLoopMode.COMMON in modes or self.current_mode in modes

    def _collect_due(self, now):
        """
        Pop the timers due at 'now' that may fire in the current mode.

        Due timers registered for other modes are moved to self.deferred.
        Discarded timers are dropped.
        """
        ready = []
        self.mutex.acquire()
        try:
            for timer in list(self.deferred):
                if not timer.is_valid:
                    self.deferred.remove(timer)
                    self.modes.pop(timer, None)
                elif self._matches(timer):
                    self.deferred.remove(timer)
                    ready.append(timer)
            while len(self.events) > 0:
                fire_date = self.events.peekitem(0)[0]
                if fire_date > now:
                    break
                _, timers = self.events.popitem(0)
                for timer in timers:
                    if not timer.is_valid:
                        self.modes.pop(timer, None)
                    elif self._matches(timer):
                        ready.append(timer)
                    else:
                        self.deferred.append(timer)
        finally:
            self.mutex.release()
        return ready

    def _dispatch(self, timer):
        """Fire one due timer and reschedule it if it repeats."""
        self.dispatch_mutex.acquire()
        try:
            if timer.is_valid:
                try:
                    timer.block(timer)
                except Exception:  # pylint: disable=broad-except
                    logger.exception("Callback of %r raised", timer)
        finally:
            self.dispatch_mutex.release()

        self.mutex.acquire()
        try:
            # invalidated or discarded before the callback returned
            if timer not in self.modes or not timer.is_valid:
                self.modes.pop(timer, None)
                return
            if timer.repeats:
                timer.fire_date = timer.next_fire_date(time.time())
                self.events.setdefault(timer.fire_date, []).append(timer)
                return
        finally:
            self.mutex.release()
        # one-shot timers are done after their fire
        timer.invalidate()

    def shutdown(self, wait_until_done=True):
        """
        Shut down the loop.

        Pending fires are dropped. If wait_until_done is True the method
        returns once the loop thread ends.
        """
        self.running = False
        # ping the loop to stop waiting
        self.timer_event.set()
        if wait_until_done and self.is_alive() and current_thread() is not self:
            self.join()

    def run(self):
        """
        Thread worker.

        Sleeps until the earliest fire date, or until pinged by a change
        of the queue or the mode, then fires every due timer.
        """
        while self.running:
            wait_time = None
            self.mutex.acquire()
            try:
                if len(self.events) > 0:
                    wait_time = self.events.peekitem(0)[0] - time.time()
            finally:
                self.mutex.release()

            if wait_time is None:
                # just wait for a new timer or a mode switch
                self.timer_event.wait()
            elif wait_time > 0:
                self.timer_event.wait(wait_time)
            self.timer_event.clear()

            if not self.running:
                break
            for timer in self._collect_due(time.time()):
                if not self.running:
                    break
                self._dispatch(timer)

        self.mutex.acquire()
        try:
            self.events.clear()
            # detach leftover timers so they can be added to another loop
            for timer in self.modes:
                timer.run_loop = None
            self.modes.clear()
            self.deferred = []
        finally:
            self.mutex.release()
        logger.debug("Run loop %s stopped", self.name)
