"""
Tests for the Commitment Ledger.

Tests cover:
1. Commitment acceptance and rejection
2. Reveal matching
3. Bid bounds at reveal
4. Bidder registry
"""

import pytest

from bondauction.core.auction import Bid, CommitmentLedger, SealedBid, create_commitment
from bondauction.core.errors import CommitmentError, RevealError
from bondauction.crypto import ZERO_HASH
from bondauction.utils.validation import MAX_ENCRYPTED_BID_SIZE

E18 = 10**18
MIN_PRICE = 85 * E18
MAX_PRICE = 100 * E18
CIPHERTEXT = b"encrypted"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ledger():
    return CommitmentLedger()


@pytest.fixture
def alice(make_account):
    return make_account()


@pytest.fixture
def bob(make_account):
    return make_account()


def committed(ledger, bidder, price=90 * E18, quantity=1000 * E18, salt=1111):
    sealed = SealedBid(bidder, price, quantity, salt)
    ledger.commit(bidder, sealed.compute_commitment(), CIPHERTEXT)
    return sealed


# =============================================================================
# Commit
# =============================================================================


class TestCommit:

    def test_commit_records_bid(self, ledger, alice):
        commitment = create_commitment(alice, 90 * E18, 1000 * E18, 1111)
        bid = ledger.commit(alice, commitment, CIPHERTEXT)

        assert bid.commitment == commitment
        assert bid.encrypted_bid == CIPHERTEXT
        assert bid.committed
        assert not bid.revealed
        assert ledger.bidder_count() == 1
        assert ledger.get_bidder(0) == alice

    def test_duplicate_commit_rejected(self, ledger, alice):
        committed(ledger, alice)
        other = create_commitment(alice, 91 * E18, 1 * E18, 2)
        with pytest.raises(CommitmentError, match="Bid already committed"):
            ledger.commit(alice, other, CIPHERTEXT)
        assert ledger.bidder_count() == 1

    def test_empty_ciphertext_rejected(self, ledger, alice):
        commitment = create_commitment(alice, 90 * E18, 1 * E18, 1)
        with pytest.raises(CommitmentError, match="Invalid encrypted bid"):
            ledger.commit(alice, commitment, b"")
        assert ledger.bidder_count() == 0
        assert not ledger.get_bid(alice).committed

    def test_oversized_ciphertext_rejected(self, ledger, alice):
        commitment = create_commitment(alice, 90 * E18, 1 * E18, 1)
        with pytest.raises(CommitmentError, match="Invalid encrypted bid"):
            ledger.commit(alice, commitment, b"x" * (MAX_ENCRYPTED_BID_SIZE + 1))

    def test_zero_commitment_rejected(self, ledger, alice):
        with pytest.raises(CommitmentError, match="Invalid commitment"):
            ledger.commit(alice, ZERO_HASH, CIPHERTEXT)

    def test_malformed_commitment_rejected(self, ledger, alice):
        with pytest.raises(CommitmentError, match="Invalid commitment"):
            ledger.commit(alice, b"\x01" * 31, CIPHERTEXT)

    def test_malformed_bidder_rejected(self, ledger):
        with pytest.raises(CommitmentError):
            ledger.commit(b"\x01" * 19, b"\x01" * 32, CIPHERTEXT)

    def test_registry_keeps_commit_order(self, ledger, make_account):
        accounts = [make_account() for _ in range(5)]
        for account in accounts:
            committed(ledger, account)
        assert ledger.bidders == accounts
        assert [ledger.get_bidder(i) for i in range(5)] == accounts

    def test_get_bidder_out_of_range(self, ledger, alice):
        committed(ledger, alice)
        with pytest.raises(IndexError):
            ledger.get_bidder(1)
        with pytest.raises(IndexError):
            ledger.get_bidder(-1)


# =============================================================================
# Reveal
# =============================================================================


class TestReveal:

    def test_matching_reveal(self, ledger, alice):
        sealed = committed(ledger, alice)
        bid = ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)

        assert bid.revealed
        assert bid.price == sealed.price
        assert bid.quantity == sealed.quantity
        assert ledger.revealed_count() == 1

    @pytest.mark.parametrize("delta", [
        {"price": 91 * E18},
        {"quantity": 999 * E18},
        {"salt": 2222},
    ])
    def test_mismatched_reveal(self, ledger, alice, delta):
        sealed = committed(ledger, alice)
        args = {"price": sealed.price, "quantity": sealed.quantity, "salt": sealed.salt, **delta}
        with pytest.raises(RevealError, match="Invalid reveal"):
            ledger.reveal(alice, args["price"], args["quantity"], args["salt"], MIN_PRICE, MAX_PRICE)
        assert not ledger.get_bid(alice).revealed

    def test_reveal_of_someone_elses_commitment(self, ledger, alice, bob):
        """The commitment binds the bidder address."""
        sealed = committed(ledger, alice)
        committed(ledger, bob, salt=9)
        with pytest.raises(RevealError, match="Invalid reveal"):
            ledger.reveal(bob, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)

    def test_reveal_without_commitment(self, ledger, alice):
        with pytest.raises(RevealError, match="Invalid reveal"):
            ledger.reveal(alice, 90 * E18, 1 * E18, 1, MIN_PRICE, MAX_PRICE)

    def test_double_reveal(self, ledger, alice):
        sealed = committed(ledger, alice)
        ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)
        with pytest.raises(RevealError, match="Bid already revealed"):
            ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)

    @pytest.mark.parametrize("price", [84 * E18, 101 * E18])
    def test_price_out_of_range(self, ledger, alice, price):
        sealed = committed(ledger, alice, price=price)
        with pytest.raises(RevealError, match="Price out of range"):
            ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)
        assert not ledger.get_bid(alice).revealed

    @pytest.mark.parametrize("price", [MIN_PRICE, MAX_PRICE])
    def test_price_bounds_inclusive(self, ledger, alice, price):
        sealed = committed(ledger, alice, price=price)
        assert ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE).revealed

    def test_zero_quantity(self, ledger, alice):
        sealed = committed(ledger, alice, quantity=0)
        with pytest.raises(RevealError, match="Invalid quantity"):
            ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)

    def test_negative_values_rejected(self, ledger, alice):
        committed(ledger, alice)
        with pytest.raises(RevealError):
            ledger.reveal(alice, -1, 1, 1, MIN_PRICE, MAX_PRICE)


# =============================================================================
# Queries
# =============================================================================


class TestQueries:

    def test_get_bid_returns_copy(self, ledger, alice):
        committed(ledger, alice)
        copy = ledger.get_bid(alice)
        copy.allocation = 123
        assert ledger.bids[alice].allocation == 0

    def test_unknown_bidder(self, ledger, alice):
        assert ledger.get_bid(alice) == Bid()
        assert ledger.get_encrypted_bid(alice) == b""

    def test_unrevealed_bidders(self, ledger, alice, bob):
        sealed = committed(ledger, alice)
        committed(ledger, bob)
        ledger.reveal(alice, sealed.price, sealed.quantity, sealed.salt, MIN_PRICE, MAX_PRICE)
        assert ledger.get_unrevealed_bidders() == [bob]
