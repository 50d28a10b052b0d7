"""
Commitment Ledger - sealed bids and their disclosure.

This module implements the two halves of a sealed bid:
1. Commit: a bidder records C = keccak256(bidder, price, quantity, salt)
   together with an opaque ciphertext of the bid for the issuer.
2. Reveal: the bidder discloses (price, quantity, salt); the ledger
   recomputes C for the caller's own address and accepts only an exact
   match.

Binding the caller's address into the hash is the only authentication
needed: nobody else can produce a matching reveal for someone's slot,
and a copied commitment is useless to a different bidder.

The ledger also keeps the bidder registry, the append-only commit order
that the clearing engine uses to break price ties.
"""

from dataclasses import dataclass, replace
from typing import Dict, List

from bondauction.core.errors import CommitmentError, RevealError
from bondauction.crypto import ZERO_HASH, bytes_to_hex, hash_bid_commitment
from bondauction.utils.logger import get_logger
from bondauction.utils.validation import (
    MAX_ENCRYPTED_BID_SIZE,
    validate_address,
    validate_bytes,
    validate_hash,
    validate_uint256,
)

logger = get_logger("commit_reveal")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class Bid:
    """
    A bidder's record, created on first commitment and never deleted.

    price and quantity are meaningful only once revealed; allocation is
    written once by finalization.
    """
    commitment: bytes = ZERO_HASH
    encrypted_bid: bytes = b""
    price: int = 0
    quantity: int = 0
    revealed: bool = False
    claimed: bool = False
    allocation: int = 0

    @property
    def committed(self) -> bool:
        return self.commitment != ZERO_HASH


@dataclass(frozen=True)
class SealedBid:
    """
    The secret a bidder keeps between commit and reveal.
    """
    bidder: bytes
    price: int
    quantity: int
    salt: int

    def compute_commitment(self) -> bytes:
        """Commitment that the reveal must reproduce."""
        return hash_bid_commitment(self.bidder, self.price, self.quantity, self.salt)


def create_commitment(bidder: bytes, price: int, quantity: int, salt: int) -> bytes:
    """
    Create a commitment for a bid.

    Args:
        bidder: 20-byte bidder address
        price: Bid price (18-decimal fixed point)
        quantity: Bid quantity (18-decimal fixed point)
        salt: Random blinding factor

    Returns:
        32-byte keccak256 commitment
    """
    return hash_bid_commitment(bidder, price, quantity, salt)


# =============================================================================
# Commitment Ledger
# =============================================================================


class CommitmentLedger:
    """
    Per-bidder commitments, ciphertexts and disclosed bids.

    Phase and deadline checks are the caller's job; this class enforces
    everything about the bid itself.
    """

    def __init__(self):
        self.bids: Dict[bytes, Bid] = {}
        self.bidders: List[bytes] = []

    # =========================================================================
    # Commit
    # =========================================================================

    def check_commit(self, bidder: bytes, commitment: bytes, encrypted_bid: bytes) -> None:
        """
        Validate a commitment without recording it.

        Raises:
            CommitmentError: malformed input, repeat commitment or empty
                ciphertext
        """
        valid, err = validate_address(bidder, "bidder")
        if not valid:
            raise CommitmentError(err)

        valid, err = validate_hash(commitment, "commitment")
        if not valid or commitment == ZERO_HASH:
            raise CommitmentError("Invalid commitment")

        existing = self.bids.get(bidder)
        if existing is not None and existing.committed:
            raise CommitmentError("Bid already committed")

        valid, err = validate_bytes(
            encrypted_bid,
            "encrypted_bid",
            max_length=MAX_ENCRYPTED_BID_SIZE,
            allow_empty=False,
        )
        if not valid:
            raise CommitmentError("Invalid encrypted bid")

    def commit(self, bidder: bytes, commitment: bytes, encrypted_bid: bytes) -> Bid:
        """Record a bidder's one-time commitment (see check_commit)."""
        self.check_commit(bidder, commitment, encrypted_bid)

        existing = self.bids.get(bidder)
        bid = existing or Bid()
        bid.commitment = bytes(commitment)
        bid.encrypted_bid = bytes(encrypted_bid)
        if existing is None:
            self.bids[bidder] = bid
            self.bidders.append(bidder)

        logger.debug(f"Commit from {bytes_to_hex(bidder)[:10]}...: {bytes_to_hex(commitment)[:18]}...")
        return bid

    # =========================================================================
    # Reveal
    # =========================================================================

    def check_reveal(
        self,
        bidder: bytes,
        price: int,
        quantity: int,
        salt: int,
        min_price: int,
        max_price: int,
    ) -> Bid:
        """
        Validate a reveal without applying it.

        Returns:
            The bidder's live record

        Raises:
            RevealError: repeat reveal, commitment mismatch, price outside
                [min_price, max_price] or zero quantity
        """
        valid, err = validate_address(bidder, "bidder")
        if not valid:
            raise RevealError(err)

        for value, name in ((price, "price"), (quantity, "quantity"), (salt, "salt")):
            valid, err = validate_uint256(value, name)
            if not valid:
                raise RevealError(err)

        bid = self.bids.get(bidder)
        if bid is not None and bid.revealed:
            raise RevealError("Bid already revealed")

        stored = bid.commitment if bid is not None else ZERO_HASH
        if hash_bid_commitment(bidder, price, quantity, salt) != stored:
            logger.warning(f"Reveal mismatch for {bytes_to_hex(bidder)[:10]}...")
            raise RevealError("Invalid reveal")

        if price < min_price or price > max_price:
            raise RevealError("Price out of range")
        if quantity == 0:
            raise RevealError("Invalid quantity")
        return bid

    def reveal(
        self,
        bidder: bytes,
        price: int,
        quantity: int,
        salt: int,
        min_price: int,
        max_price: int,
    ) -> Bid:
        """Disclose a committed bid (see check_reveal)."""
        bid = self.check_reveal(bidder, price, quantity, salt, min_price, max_price)
        bid.price = price
        bid.quantity = quantity
        bid.revealed = True

        logger.debug(f"Reveal from {bytes_to_hex(bidder)[:10]}...: price={price} quantity={quantity}")
        return bid

    # =========================================================================
    # Queries
    # =========================================================================

    def get_bid(self, bidder: bytes) -> Bid:
        """Copy of a bidder's record (an empty record if none)."""
        bid = self.bids.get(bidder)
        return replace(bid) if bid is not None else Bid()

    def get_encrypted_bid(self, bidder: bytes) -> bytes:
        bid = self.bids.get(bidder)
        return bid.encrypted_bid if bid is not None else b""

    def bidder_count(self) -> int:
        return len(self.bidders)

    def get_bidder(self, index: int) -> bytes:
        if index < 0 or index >= len(self.bidders):
            raise IndexError(f"Bidder index {index} out of range [0, {len(self.bidders)})")
        return self.bidders[index]

    def revealed_count(self) -> int:
        return sum(1 for bid in self.bids.values() if bid.revealed)

    def get_unrevealed_bidders(self) -> List[bytes]:
        """Bidders who committed but never revealed, in commit order."""
        return [b for b in self.bidders if not self.bids[b].revealed]


__all__ = [
    "Bid",
    "SealedBid",
    "create_commitment",
    "CommitmentLedger",
]
