"""
Phase Controller - state machine and deadlines of a bond auction.

    COMMIT ──(first valid reveal)──> REVEAL ──(operator finalize)──> FINALIZED
       └────────(operator finalize, now >= reveal_deadline)─────────────┘

The move to REVEAL is a side effect of the first accepted reveal rather
than of the clock: nobody has to "poke" the auction when the commit
deadline passes. Claims run after FINALIZED until the claim deadline.
"""

from dataclasses import dataclass
from enum import IntEnum

from bondauction.core.errors import PhaseError


class AuctionState(IntEnum):
    """State of a bond auction."""
    COMMIT = 0       # Accepting commitments (initial)
    REVEAL = 1       # At least one bid revealed
    FINALIZED = 2    # Clearing price and allocations fixed
    DISTRIBUTED = 3  # Reserved; no transition enters this state


@dataclass
class PhaseController:
    """
    Owns the auction state and the three deadlines.

    Deadlines are absolute clock timestamps with
    commit_deadline < reveal_deadline < claim_deadline.
    """
    commit_deadline: int
    reveal_deadline: int
    claim_deadline: int
    state: AuctionState = AuctionState.COMMIT

    @classmethod
    def from_durations(
        cls,
        start: int,
        commit_duration: int,
        reveal_duration: int,
        claim_duration: int,
    ) -> "PhaseController":
        commit_deadline = start + commit_duration
        reveal_deadline = commit_deadline + reveal_duration
        return cls(
            commit_deadline=commit_deadline,
            reveal_deadline=reveal_deadline,
            claim_deadline=reveal_deadline + claim_duration,
        )

    # =========================================================================
    # Gates
    # =========================================================================

    def require_commit(self, now: int) -> None:
        if self.state != AuctionState.COMMIT:
            raise PhaseError(f"Not in commit phase (state: {self.state.name})")
        if now >= self.commit_deadline:
            raise PhaseError("Commit phase ended")

    def require_reveal(self, now: int) -> None:
        if self.state not in (AuctionState.COMMIT, AuctionState.REVEAL):
            raise PhaseError(f"Not in reveal phase (state: {self.state.name})")
        if now >= self.reveal_deadline:
            raise PhaseError("Reveal phase ended")
        if self.state == AuctionState.COMMIT and now < self.commit_deadline:
            raise PhaseError("Reveal phase not started")

    def require_finalizable(self, now: int) -> None:
        if self.state == AuctionState.REVEAL:
            return
        if self.state == AuctionState.COMMIT and now >= self.reveal_deadline:
            return
        if self.state == AuctionState.COMMIT:
            raise PhaseError("Cannot finalize yet")
        raise PhaseError(f"Auction already finalized (state: {self.state.name})")

    def require_finalized(self) -> None:
        if self.state != AuctionState.FINALIZED:
            raise PhaseError("Auction not finalized")

    def require_claimable(self, now: int) -> None:
        self.require_finalized()
        if now >= self.claim_deadline:
            raise PhaseError("Claim period ended")

    # =========================================================================
    # Transitions
    # =========================================================================

    def on_reveal(self) -> bool:
        """Record an accepted reveal; True if it opened the reveal phase."""
        if self.state == AuctionState.COMMIT:
            self.state = AuctionState.REVEAL
            return True
        return False

    def mark_finalized(self) -> None:
        self.state = AuctionState.FINALIZED

    # =========================================================================
    # Queries
    # =========================================================================

    def accepting_commits(self, now: int) -> bool:
        return self.state == AuctionState.COMMIT and now < self.commit_deadline

    def accepting_reveals(self, now: int) -> bool:
        if self.state == AuctionState.REVEAL:
            return now < self.reveal_deadline
        return self.state == AuctionState.COMMIT and self.commit_deadline <= now < self.reveal_deadline

    def accepting_claims(self, now: int) -> bool:
        return self.state == AuctionState.FINALIZED and now < self.claim_deadline
