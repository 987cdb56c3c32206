"""
Module shows how to use Timers to launch single shot actions
using absolute and relative fire times.
"""

import time
from weak_timers import Timers


class Greeter:
    def __init__(self, name):
        self.name = name

    def greet(self):
        print("Hello from %s" % self.name)


greeter = Greeter("greeter")
timers = Timers()

# Fire in 2 seconds using relative time
timers.fire_after(2, greeter, Greeter.greet)

# Fire in 3 seconds using absolute time
timers.fire_at(time.time() + 3, greeter, lambda greeter: print("Second fire for %s" % greeter.name))

# wait for 4 seconds
time.sleep(4)
timers.clear()
