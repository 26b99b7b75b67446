"""Clock protocol — current time in integer seconds."""
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...
