"""
Implement the timer handle.

A timer describes one timed callback: when it should fire first,
whether and how often it repeats, and whether it is still valid.
The timer does not fire by itself. It has to be added to a run loop,
which calls it when the fire date is reached.
"""

# pylint: disable=consider-using-f-string, invalid-name
import datetime
import logging
import time

logger = logging.getLogger(__name__)

# Shortest interval accepted for repeating timers. Non-positive
# intervals are replaced by this value.
MIN_INTERVAL = 0.0001


def to_timestamp(date):
    """
    Convert a fire date to seconds since the epoch.

    Arguments:
        date - float/int timestamp (time.time() scale) or datetime.
               Naive datetimes are treated as local time.
    Returns:
        timestamp as float
    """
    if isinstance(date, datetime.datetime):
        return date.timestamp()
    return float(date)


class Timer:
    """
    A single scheduled, cancellable timed callback.

    Arguments:
        interval - seconds between fires for repeating timers.
        block - callable invoked as block(timer) on every fire.
        repeats - True for repeating timers, False for one-shot timers.
        fire_date - absolute time of the first fire. Defaults to
                    now + interval.
        tolerance - allowed slack in the fire time. Defaults to 0.

    Attributes:
        fire_date - time of the upcoming fire
        time_interval - interval between fires, 0 for one-shot timers
        repeats - repeat flag
        tolerance - allowed slack in the fire time
        run_loop - run loop the timer was added to, or None
    """

    def __init__(self, interval, block, repeats=False, fire_date=None, tolerance=0.0):
        if repeats and interval <= 0:
            interval = MIN_INTERVAL
        if not repeats:
            interval = max(interval, 0.0)
        self.time_interval = interval
        self.block = block
        self.repeats = repeats
        if fire_date is None:
            fire_date = time.time() + interval
        self.fire_date = to_timestamp(fire_date)
        self._tolerance = 0.0
        self.tolerance = tolerance
        self.run_loop = None
        self._valid = True

    @property
    def tolerance(self):
        """Allowed slack in the fire time, never negative."""
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value):
        self._tolerance = max(float(value), 0.0)

    @property
    def is_valid(self):
        """True until the timer is invalidated or a one-shot timer has fired."""
        return self._valid

    def invalidate(self):
        """
        Stop the timer from ever firing again.

        The timer is removed from its run loop. Calling the method on an
        already invalid timer does nothing.
        """
        if not self._valid:
            return
        self._valid = False
        logger.debug("Invalidating %r", self)
        if self.run_loop is not None:
            self.run_loop.remove_timer(self)

    def discard(self):
        """
        Mark the timer invalid without touching its run loop.

        Takes no locks, so it is safe to call from finalizers. The loop
        drops the timer when it next comes across it.
        """
        self._valid = False

    def fire(self):
        """
        Fire the timer now, outside of its schedule.

        Repeating timers keep their schedule. One-shot timers are
        invalidated, as after a scheduled fire.
        """
        if not self._valid:
            return
        self.block(self)
        if not self.repeats:
            self.invalidate()

    def next_fire_date(self, now):
        """
        Compute the fire date following the current one.

        Fire dates already in the past are skipped, so a loop that
        falls behind does not fire a burst of late callbacks.

        Arguments:
            now - current time
        Returns:
            next fire date
        """
        next_date = self.fire_date + self.time_interval
        if next_date <= now:
            missed = int((now - self.fire_date) // self.time_interval)
            next_date = self.fire_date + (missed + 1) * self.time_interval
        return next_date

    def __repr__(self):
        return "<Timer fire_date=%.3f interval=%s repeats=%s valid=%s>" % (
            self.fire_date, self.time_interval, self.repeats, self._valid)
