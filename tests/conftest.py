from __future__ import annotations

import pytest

from fakes import FakeClock
from rate_limiter import RateLimiter


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> RateLimiter:
    return RateLimiter(1.0, clock=fake_clock, sleep=fake_clock.sleep)
