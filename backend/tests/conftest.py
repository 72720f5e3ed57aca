from datetime import datetime, timedelta, timezone

import pytest

from hyve_relay.storage import HandshakeStore, MailboxStore


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def handshakes(clock):
    return HandshakeStore(clock)


@pytest.fixture
def mailbox(clock):
    return MailboxStore(clock)
