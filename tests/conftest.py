"""Shared fixtures for the monitor tests."""

import pytest


class FakeClock:
    """Monotonic clock the test advances by hand"""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays"""

    def __init__(self, calls=None):
        self.delays = []
        self.calls = calls

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.calls is not None:
            self.calls.sleep(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    return SleepRecorder()
