from pathlib import Path
import sys

import pytest

# Ensure project root is on sys.path before tests import modules
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# 512-bit HS512 test key
TEST_SECRET = "404E635266556A586E3272357538782F413F4428472B4B6250645367566B5970"


class FakeClock:
    """Deterministic ClockPort for token tests."""

    def __init__(self, start=1_700_000_000):
        self.now = int(start)

    def now_utc_ts(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def secret():
    return TEST_SECRET
