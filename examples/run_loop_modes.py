"""
Module shows how run loop modes defer timers.

The timer is added in the event tracking mode, while the loop runs in the
default mode. It fires only once the loop switches to event tracking.
"""

import time
from weak_timers import RunLoop, RunLoopMode, Timers


class Tracker:
    def update(self):
        print("Tracker updated at %.3f" % time.time())


tracker = Tracker()
loop = RunLoop()
loop.start()

timers = Timers(run_loop=loop, mode=RunLoopMode.EVENT_TRACKING)
timers.fire_after(1, tracker, Tracker.update)

print("Waiting 2 seconds in the default mode, nothing should fire")
time.sleep(2)

print("Switching to event tracking at %.3f" % time.time())
loop.switch_mode(RunLoopMode.EVENT_TRACKING)
time.sleep(1)

timers.clear()
loop.shutdown()
