"""
Shared fixtures for the bond auction test suite.
"""

import pytest

from bondauction.core.clock import ManualClock
from bondauction.crypto import generate_keypair
from bondauction.crypto.bid_encryption import generate_issuer_keypair

START_TIME = 1_700_000_000


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture(scope="session")
def issuer_keys():
    """RSA keypair shared by the whole session (generation is slow)."""
    return generate_issuer_keypair()


@pytest.fixture
def make_account():
    """Factory for fresh 20-byte account addresses."""
    def _make():
        return generate_keypair().address
    return _make
