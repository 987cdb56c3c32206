"""Repeating and one-shot timers dispatching to weakly referenced targets"""

from .run_loop import RunLoop, RunLoopMode
from .timer import Timer
from .timers import Timers
__version__ = '2026.10.19'
__all__ = ['RunLoop', 'RunLoopMode', 'Timer', 'Timers']
