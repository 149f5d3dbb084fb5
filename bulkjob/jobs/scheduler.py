"""Clock and delay abstraction used between status polls."""

import time
from abc import ABC, abstractmethod


class Scheduler(ABC):
    """Source of elapsed time and of the delay between polls."""

    @abstractmethod
    def monotonic(self) -> float:
        """Current time in seconds from an arbitrary fixed point."""
        pass

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Block for the given number of seconds."""
        pass


class SystemScheduler(Scheduler):
    """Scheduler backed by the process clock."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
