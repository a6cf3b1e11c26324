import itertools
import random
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class IdGenerator(Protocol):
    def new_id(self) -> str: ...

    def random_digits(self, low: int, high: int) -> int: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class UuidGenerator:
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def new_id(self) -> str:
        return str(uuid.uuid4())

    def random_digits(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)


class SequentialIdGenerator:
    def __init__(self, prefix: str = "id", start: int = 1) -> None:
        self.prefix = prefix
        self._ids = itertools.count(start)
        self._digits = itertools.count(1000)
        self._lock = threading.Lock()

    def new_id(self) -> str:
        with self._lock:
            return f"{self.prefix}-{next(self._ids)}"

    def random_digits(self, low: int, high: int) -> int:
        with self._lock:
            value = next(self._digits)
        span = high - low + 1
        return low + (value - low) % span


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with clock readings."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
