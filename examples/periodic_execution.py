"""
Module shows how to use Timers to launch periodic actions.

The timer is scheduled with 1 second period, and cleared after 5 seconds.
"""

import time
from weak_timers import Timers


class Counter:
    def __init__(self):
        self.value = 0

    def tick(self, timer):
        self.value += 1
        print("Tick %s, next fire at %.3f" % (self.value, timer.fire_date + timer.time_interval))


counter = Counter()
timers = Timers()

print("Scheduling the timer")
timers.add_repeating(1.0, counter, Counter.tick)

time.sleep(5)
print("Clearing the timers")
timers.clear()
print("Counter: %s" % counter.value)
