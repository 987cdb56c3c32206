"""
Implement the timer registry.

The registry owns the timers created through it and cancels all of them
on clear(), or when the registry itself goes away. Timers created by the
factory methods hold their target through a weak reference: a pending
timer never keeps its target alive, and once the target is gone the
timer's fires do nothing.

Example:

    timers = Timers()
    timers.add_repeating(1.0, view, lambda view: view.reload_data())

The handler receives the target as an argument. It must not refer to the
target through its closure, or the target is kept alive by the timer.
"""

# pylint: disable=consider-using-f-string, invalid-name
import inspect
import logging
from threading import Lock
import time
import weakref

from .run_loop import RunLoop, RunLoopMode
from .timer import Timer, to_timestamp

logger = logging.getLogger(__name__)


def _accepts_timer(handler):
    """
    Check whether a handler takes the timer as its second argument.

    Only parameters without a default count. Handlers whose signature
    can't be inspected are assumed to take it.
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return True
    positional = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.default is not inspect.Parameter.empty:
            continue
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY,
                          inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 2


def _with_timer(handler):
    """Return a handler callable as handler(target, timer)."""
    if _accepts_timer(handler):
        return handler

    def target_only(target, _timer):
        handler(target)
    return target_only


class Timers:
    """
    Collection of timers cancelled together.

    Arguments:
        run_loop - loop the timers are added to. Defaults to RunLoop.main().
        mode - mode the timers are added in. Defaults to RunLoopMode.COMMON.

    Attributes:
        timers - list of owned timers, in registration order
        timers_mutex - mutex protecting access to self.timers
    """

    def __init__(self, run_loop=None, mode=RunLoopMode.COMMON):
        self.run_loop = run_loop
        self.mode = mode
        self.timers = []
        self.timers_mutex = Lock()

    def add(self, timer, run_loop=None, mode=None):
        """
        Schedule an externally created timer and take ownership of it.

        Arguments:
            timer - Timer to schedule
            run_loop - loop to schedule on. Defaults to the registry's loop.
            mode - RunLoopMode to schedule in. Defaults to the registry's mode.
        """
        if run_loop is None:
            run_loop = self.run_loop
        if run_loop is None:
            run_loop = RunLoop.main()
        if mode is None:
            mode = self.mode
        run_loop.add_timer(timer, mode)
        self.timers_mutex.acquire()
        try:
            self.timers.append(timer)
        finally:
            self.timers_mutex.release()
        return timer

    def add_custom(self, target, handler, make_timer, run_loop=None, mode=None):
        """
        Create a timer bound weakly to a target and schedule it.

        make_timer is called with the callback block and returns the Timer
        to schedule. On every fire the block looks up the target; if it is
        still alive, handler(target, timer) is called, otherwise nothing
        happens.

        Arguments:
            target - object passed to the handler. Must support weak references.
            handler - callable(target, timer)
            make_timer - callable(block) returning a Timer
            run_loop - see add()
            mode - see add()
        Returns:
            the scheduled timer
        Exceptions:
            TypeError - the target can't be weakly referenced
        """
        target_ref = weakref.ref(target)

        def block(timer):
            strong_target = target_ref()
            if strong_target is not None:
                handler(strong_target, timer)

        return self.add(make_timer(block), run_loop=run_loop, mode=mode)

    def add_weakly_bound(self, target, interval, tolerance, repeating, handler,
                         fire_date=None, run_loop=None, mode=None):
        """
        Create a weakly bound timer firing every 'interval' seconds, or once.

        Arguments:
            target - object passed to the handler
            interval - seconds between fires. For one-shot timers without a
                       fire_date, delay of the single fire.
            tolerance - allowed slack in the fire time
            repeating - True for a repeating timer
            handler - callable(target) or callable(target, timer)
            fire_date - absolute time of the first fire. Defaults to
                        now + interval.
        Returns:
            the scheduled timer
        """
        handler = _with_timer(handler)

        def make_timer(block):
            return Timer(interval, block,
                         repeats=repeating,
                         fire_date=fire_date,
                         tolerance=tolerance)

        return self.add_custom(target, handler, make_timer,
                               run_loop=run_loop, mode=mode)

    def add_repeating(self, interval, target, handler, tolerance=0.0, first_fire=None):
        """
        Create a repeating timer bound weakly to a target.

        Without first_fire, the first fire happens after 'interval' seconds.
        With first_fire (absolute time, float or datetime), the timer fires
        first at that moment, then every 'interval' seconds.
        """
        return self.add_weakly_bound(target, interval, tolerance, True, handler,
                                     fire_date=first_fire)

    def fire_at(self, date, target, handler):
        """
        Create a one-shot timer firing at an absolute time.

        The timer becomes invalid after its fire but stays in the registry
        until clear().
        """
        return self.add_weakly_bound(target, 0.0, 0.0, False, handler,
                                     fire_date=to_timestamp(date))

    def fire_after(self, delay, target, handler):
        """Create a one-shot timer firing 'delay' seconds from now."""
        return self.fire_at(time.time() + delay, target, handler)

    def clear(self):
        """
        Invalidate every owned timer and empty the registry.

        Callbacks already running are not interrupted, but no fire starts
        after the method returns. Calling clear() on an empty registry
        does nothing.
        """
        self.timers_mutex.acquire()
        try:
            timers = self.timers
            self.timers = []
        finally:
            self.timers_mutex.release()
        for timer in timers:
            timer.invalidate()
        if len(timers) > 0:
            logger.debug("Cleared %s timers", len(timers))

    def __len__(self):
        self.timers_mutex.acquire()
        try:
            return len(self.timers)
        finally:
            self.timers_mutex.release()

    def __iter__(self):
        self.timers_mutex.acquire()
        try:
            return iter(list(self.timers))
        finally:
            self.timers_mutex.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.clear()

    def __del__(self):
        # The garbage collector may run this on a thread holding a loop
        # mutex, so no locks here. Loops drop discarded timers lazily.
        timers = self.timers
        self.timers = []
        for timer in timers:
            timer.discard()
