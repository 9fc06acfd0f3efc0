import threading
import time
from typing import Callable, Optional

from pyfleetapi.models import RateLimitConfig


class RateLimiter:
    """
    Client side rate limiter for Fleet API requests.

    Requests are spaced at least 60 / realtime_data_rpm seconds apart. The
    time of the last request is checked and updated while holding the lock,
    so concurrent callers queue up behind each other rather than sharing a
    slot.

    Args:
        config (RateLimitConfig): Requests per minute ceilings.
        clock (callable, optional): Monotonic clock in seconds. Defaults to time.monotonic.
        sleep (callable, optional): Blocking sleep in seconds. Defaults to time.sleep.
    """

    def __init__(self, config: Optional[RateLimitConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config or RateLimitConfig()
        self.clock = clock
        self.sleep = sleep
        self.lock = threading.Lock()
        self.last_request: Optional[float] = None

    @property
    def interval(self) -> float:
        return 60.0 / self.config.realtime_data_rpm

    def set_rate(self, requests_per_minute: int):
        if requests_per_minute <= 0:
            raise ValueError(f"requests per minute must be positive, got {requests_per_minute}")
        with self.lock:
            self.config.realtime_data_rpm = requests_per_minute

    def wait(self) -> float:
        """
        Block until the next request is allowed and claim the slot.

        Returns:
            float: Seconds spent waiting.
        """
        waited = 0.0
        with self.lock:
            interval = self.interval
            if self.last_request is not None:
                elapsed = self.clock() - self.last_request
                if elapsed < interval:
                    waited = interval - elapsed
                    self.sleep(waited)
            self.last_request = self.clock()
        return waited
