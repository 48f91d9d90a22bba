"""Human-readable order and bill numbers."""
import random
import threading
import time
from datetime import datetime, timezone
from typing import Optional

from config import get_settings


def generate_order_number(now: Optional[datetime] = None, tz=None) -> str:
    """ORD-YYYYMMDD-NNN on the local date. Display only, collisions are possible."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(tz or get_settings().tzinfo())
    return f"ORD-{now:%Y%m%d}-{random.randint(0, 999):03d}"


class BillNumberGenerator:
    """
    BILL-<epochMillis>-NNN, unique within the process.

    Inside one millisecond the suffix counts up from a random start; once it
    passes 999 the millisecond part is advanced instead of repeating a number.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_millis = -1
        self._sequence = 0

    def __call__(self) -> str:
        with self._lock:
            millis = int(self._clock() * 1000)
            if millis > self._last_millis:
                self._last_millis = millis
                self._sequence = random.randint(0, 999)
            else:
                self._sequence += 1
                if self._sequence > 999:
                    self._last_millis += 1
                    self._sequence = 0
            return f"BILL-{self._last_millis}-{self._sequence:03d}"


generate_bill_number = BillNumberGenerator()
