"""
Module shows that a pending timer does not keep its target alive.

The target is dropped 2.5 seconds into a 1 second repeating timer.
The handler is not called any more after that.
"""

import gc
import time
from weak_timers import Timers


class Screen:
    def reload_data(self):
        print("Reloading data")


screen = Screen()
timers = Timers()
timers.add_repeating(1.0, screen, lambda screen: screen.reload_data())

time.sleep(2.5)
print("Dropping the screen")
del screen
gc.collect()

print("No more reloads should be printed")
time.sleep(3)
timers.clear()
