"""
Bond Auction - sealed-bid, uniform-price auction engine.

One BondAuction instance is one auction: a fixed bond supply, a price
band, three deadlines and an issuer key, all fixed at creation. It wires
together:

- PhaseController: state machine and deadlines
- CommitmentLedger: commitments, ciphertexts, reveals, bidder registry
- compute_clearing: single clearing run at finalization
- SettlementLedger: claims and proceeds

Every mutating operation takes the calling account explicitly and runs
under the auction's writer lock, so operations are applied one at a time
in a single total order, external token calls included. A call back into
the auction from inside an operation (for example from a token hook) is
rejected instead of deadlocking.

Each operation validates first and changes state only inside the
recording of its audit event. If the event cannot be stored the operation
fails with every ledger unchanged.
"""

import functools
import secrets
import threading
from typing import Any, Dict, Optional

from bondauction.core.auction.clearing import ClearingResult, compute_clearing
from bondauction.core.auction.commit_reveal import Bid, CommitmentLedger
from bondauction.core.auction.phase import AuctionState, PhaseController
from bondauction.core.auction.settlement import SettlementLedger, calculate_payment
from bondauction.core.clock import Clock, SystemClock
from bondauction.core.config import PRICE_SCALE
from bondauction.core.errors import AuthorizationError, ConfigurationError, SettlementError
from bondauction.core.events import (
    AuctionFinalized,
    BidCommitted,
    BidRevealed,
    EventLog,
    ProceedsWithdrawn,
    TokensClaimed,
)
from bondauction.core.tokens.ledger import InstrumentLedger, PaymentAsset
from bondauction.crypto import bytes_to_hex, keccak256, sha256, short_hex
from bondauction.utils.logger import get_auction_logger
from bondauction.utils.validation import (
    validate_address,
    validate_auction_params,
    validate_duration,
)


def serialized(method):
    """Run a mutating operation under the auction's writer lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._lock_owner == threading.get_ident():
            raise SettlementError("Reentrant call")
        with self._lock:
            self._lock_owner = threading.get_ident()
            try:
                return method(self, *args, **kwargs)
            finally:
                self._lock_owner = None

    return wrapper


def derive_auction_id(operator: bytes, created_at: int, nonce: bytes) -> bytes:
    """32-byte auction identifier."""
    return sha256(operator + created_at.to_bytes(8, byteorder="big") + nonce)


def derive_escrow_address(auction_id: bytes) -> bytes:
    """Account that holds the auction's escrowed payments."""
    return keccak256(b"bond-auction-escrow" + auction_id)[-20:]


class BondAuction:
    """
    A single bond auction.

    Args:
        operator: Issuer account; may finalize and withdraw proceeds
        bond_token: Instrument ledger; the escrow account must hold its
            minter role before claims start
        payment_token: Payment asset ledger
        bond_supply: Quantity on offer (18-decimal fixed point)
        min_price: Lowest acceptable price (inclusive)
        max_price: Highest acceptable price (inclusive)
        commit_duration: Seconds from creation to commit deadline
        reveal_duration: Seconds from commit deadline to reveal deadline
        claim_duration: Seconds from reveal deadline to claim deadline
        issuer_public_key: Opaque key bidders encrypt their bids under
        clock: Time source (wall clock by default)
        auction_id: Identifier (derived when omitted)
        storage_manager: Persists events and snapshots. None = in-memory.
        price_scale: Fixed-point scale of prices

    Raises:
        ConfigurationError: invalid parameters
    """

    def __init__(
        self,
        operator: bytes,
        bond_token: InstrumentLedger,
        payment_token: PaymentAsset,
        bond_supply: int,
        min_price: int,
        max_price: int,
        commit_duration: int,
        reveal_duration: int,
        claim_duration: int,
        issuer_public_key: bytes,
        clock: Optional[Clock] = None,
        auction_id: Optional[bytes] = None,
        storage_manager=None,
        price_scale: int = PRICE_SCALE,
    ):
        valid, err = validate_address(operator, "operator")
        if not valid:
            raise ConfigurationError(err)
        valid, err = validate_auction_params(bond_supply, min_price, max_price, issuer_public_key)
        if not valid:
            raise ConfigurationError(err)
        for value, name in (
            (commit_duration, "commit_duration"),
            (reveal_duration, "reveal_duration"),
            (claim_duration, "claim_duration"),
        ):
            valid, err = validate_duration(value, name)
            if not valid:
                raise ConfigurationError(err)

        self.clock = clock or SystemClock()
        created_at = self.clock.now()

        self.operator = operator
        self.bond_token = bond_token
        self.payment_token = payment_token
        self.bond_supply = bond_supply
        self.min_price = min_price
        self.max_price = max_price
        self.issuer_public_key = bytes(issuer_public_key)
        self.price_scale = price_scale
        self.created_at = created_at

        self.auction_id = auction_id or derive_auction_id(operator, created_at, secrets.token_bytes(16))
        self.escrow = derive_escrow_address(self.auction_id)

        self.phase = PhaseController.from_durations(
            created_at, commit_duration, reveal_duration, claim_duration
        )
        self.ledger = CommitmentLedger()
        self.settlement = SettlementLedger(self.escrow, payment_token, bond_token, price_scale)
        self.events = EventLog(self.auction_id, storage_manager)
        self.storage_manager = storage_manager

        # Write-once outputs of finalize()
        self.clearing_price = 0
        self.total_allocated = 0
        self.clearing_result: Optional[ClearingResult] = None

        self._lock = threading.Lock()
        self._lock_owner: Optional[int] = None
        self.log = get_auction_logger("auction", self.auction_id)

        self._persist_snapshot()

        self.log.info(
            f"Created: supply={bond_supply}, "
            f"price=[{min_price}, {max_price}], commit until {self.commit_deadline}, "
            f"reveal until {self.reveal_deadline}, claim until {self.claim_deadline}"
        )

    # =========================================================================
    # Parameters
    # =========================================================================

    @property
    def state(self) -> AuctionState:
        return self.phase.state

    @property
    def commit_deadline(self) -> int:
        return self.phase.commit_deadline

    @property
    def reveal_deadline(self) -> int:
        return self.phase.reveal_deadline

    @property
    def claim_deadline(self) -> int:
        return self.phase.claim_deadline

    # =========================================================================
    # Commit Phase
    # =========================================================================

    @serialized
    def commit_bid(self, caller: bytes, commitment: bytes, encrypted_bid: bytes) -> None:
        """
        Submit a sealed bid.

        Args:
            caller: Bidder account
            commitment: keccak256(caller, price, quantity, salt)
            encrypted_bid: Bid ciphertext for the issuer (non-empty)

        Raises:
            PhaseError: not in commit phase or commit deadline passed
            CommitmentError: repeat commitment or invalid payload
        """
        now = self.clock.now()
        self.phase.require_commit(now)
        self.ledger.check_commit(caller, commitment, encrypted_bid)

        self.events.append(BidCommitted(
            timestamp=now,
            bidder=caller,
            commitment=bytes(commitment),
            encrypted_bid=bytes(encrypted_bid),
        ))
        self.ledger.commit(caller, commitment, encrypted_bid)

    # =========================================================================
    # Reveal Phase
    # =========================================================================

    @serialized
    def reveal_bid(self, caller: bytes, price: int, quantity: int, salt: int) -> None:
        """
        Disclose the caller's sealed bid.

        The first accepted reveal moves the auction into REVEAL.

        Raises:
            PhaseError: before the commit deadline, after the reveal
                deadline, or once finalized
            RevealError: mismatch, repeat reveal or out-of-bounds bid
        """
        now = self.clock.now()
        self.phase.require_reveal(now)
        self.ledger.check_reveal(caller, price, quantity, salt, self.min_price, self.max_price)

        snapshot = None
        if self.state == AuctionState.COMMIT:
            snapshot = self.snapshot(state=AuctionState.REVEAL.name)

        self.events.append(BidRevealed(
            timestamp=now,
            bidder=caller,
            price=price,
            quantity=quantity,
        ), snapshot)
        self.ledger.reveal(caller, price, quantity, salt, self.min_price, self.max_price)

        if self.phase.on_reveal():
            self.log.info("Entered reveal phase")

    # =========================================================================
    # Finalization
    # =========================================================================

    @serialized
    def finalize(self, caller: bytes) -> ClearingResult:
        """
        Compute the clearing price and allocations. Operator only, once.

        Raises:
            AuthorizationError: caller is not the operator
            PhaseError: too early, or already finalized
        """
        self._require_operator(caller)
        now = self.clock.now()
        self.phase.require_finalizable(now)

        result = compute_clearing(
            self.bond_supply,
            self.min_price,
            self.ledger.bidders,
            self.ledger.bids,
        )

        snapshot = self.snapshot(
            state=AuctionState.FINALIZED.name,
            clearing_price=result.clearing_price,
            total_allocated=result.total_allocated,
        )
        self.events.append(AuctionFinalized(
            timestamp=now,
            clearing_price=result.clearing_price,
            total_allocated=result.total_allocated,
        ), snapshot)

        for bidder, allocation in result.allocations.items():
            self.ledger.bids[bidder].allocation = allocation
        self.clearing_price = result.clearing_price
        self.total_allocated = result.total_allocated
        self.clearing_result = result
        self.phase.mark_finalized()

        self.log.info(
            f"Finalized: clearing_price={result.clearing_price}, "
            f"total_allocated={result.total_allocated}, winners={len(result.allocations)}"
        )
        return result

    # =========================================================================
    # Settlement
    # =========================================================================

    @serialized
    def claim_tokens(self, caller: bytes) -> int:
        """
        Pay for and receive the caller's allocation.

        The caller must have approved the escrow account for the payment.

        Returns:
            Payment collected

        Raises:
            PhaseError: not finalized or claim deadline passed
            SettlementError: nothing to claim, already claimed, or the
                payment could not be collected
        """
        now = self.clock.now()
        self.phase.require_claimable(now)

        bid = self.ledger.bids.get(caller)
        if bid is None:
            raise SettlementError("No allocation")

        self.settlement.check_claim(bid)

        event = TokensClaimed(
            timestamp=now,
            bidder=caller,
            allocation=bid.allocation,
            payment=calculate_payment(bid.allocation, self.clearing_price, self.price_scale),
        )
        with self.events.record(event):
            payment = self.settlement.claim(caller, bid, self.clearing_price)

        self.log.info(f"Claim by {bytes_to_hex(caller)[:10]}...: allocation={bid.allocation}, payment={payment}")
        return payment

    @serialized
    def withdraw_proceeds(self, caller: bytes) -> int:
        """
        Sweep all escrowed payments to the operator.

        Returns:
            Amount withdrawn

        Raises:
            AuthorizationError: caller is not the operator
            PhaseError: auction not finalized
        """
        self._require_operator(caller)
        self.phase.require_finalized()

        event = ProceedsWithdrawn(
            timestamp=self.clock.now(),
            operator=self.operator,
            amount=self.settlement.escrow_balance(),
        )
        with self.events.record(event):
            amount = self.settlement.withdraw(self.operator)

        self.log.info(f"Withdrew {amount} proceeds")
        return amount

    # =========================================================================
    # Queries
    # =========================================================================

    def get_encrypted_bid(self, bidder: bytes) -> bytes:
        """Stored ciphertext, or b"" if the bidder never committed."""
        return self.ledger.get_encrypted_bid(bidder)

    def get_bid(self, bidder: bytes) -> Bid:
        """Copy of the bidder's record (an empty record if none)."""
        return self.ledger.get_bid(bidder)

    def get_bidder_count(self) -> int:
        return self.ledger.bidder_count()

    def get_bidder(self, index: int) -> bytes:
        return self.ledger.get_bidder(index)

    def is_operator(self, account: bytes) -> bool:
        return account == self.operator

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_operator(self, caller: bytes) -> None:
        if caller != self.operator:
            raise AuthorizationError("Caller is not the operator")

    def _persist_snapshot(self) -> None:
        if self.storage_manager:
            self.storage_manager.save_auction(self.auction_id, self.snapshot())

    def snapshot(self, **changes) -> Dict[str, Any]:
        """JSON-safe view of parameters and results, with `changes` applied."""
        snapshot = {
            "operator": bytes_to_hex(self.operator),
            "bond_supply": self.bond_supply,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "commit_deadline": self.commit_deadline,
            "reveal_deadline": self.reveal_deadline,
            "claim_deadline": self.claim_deadline,
            "state": self.state.name,
            "clearing_price": self.clearing_price,
            "total_allocated": self.total_allocated,
        }
        snapshot.update(changes)
        return snapshot

    def stats(self) -> dict:
        """Get auction statistics."""
        return {
            "auction_id": bytes_to_hex(self.auction_id),
            "state": self.state.name,
            "bidders": self.ledger.bidder_count(),
            "revealed": self.ledger.revealed_count(),
            "clearing_price": self.clearing_price,
            "total_allocated": self.total_allocated,
            **self.settlement.stats(),
        }

    def __repr__(self) -> str:
        return (
            f"BondAuction(id={short_hex(self.auction_id)}, state={self.state.name}, "
            f"bidders={self.ledger.bidder_count()})"
        )
