"""
Bond Auction Module.

This module provides the sealed-bid, uniform-price auction:
- Phase state machine and deadlines
- Commit-reveal bid ledger
- Uniform-price clearing with pro-rata marginal allocation
- Settlement of claims and proceeds
"""

from bondauction.core.auction.phase import (
    AuctionState,
    PhaseController,
)

from bondauction.core.auction.commit_reveal import (
    Bid,
    SealedBid,
    CommitmentLedger,
    create_commitment,
)

from bondauction.core.auction.clearing import (
    ClearingResult,
    compute_clearing,
    sort_by_price,
)

from bondauction.core.auction.settlement import (
    SettlementLedger,
    calculate_payment,
)

from bondauction.core.auction.engine import (
    BondAuction,
    derive_auction_id,
    derive_escrow_address,
)

from bondauction.core.auction.house import AuctionHouse

__all__ = [
    # Phases
    "AuctionState",
    "PhaseController",
    # Commit-Reveal
    "Bid",
    "SealedBid",
    "CommitmentLedger",
    "create_commitment",
    # Clearing
    "ClearingResult",
    "compute_clearing",
    "sort_by_price",
    # Settlement
    "SettlementLedger",
    "calculate_payment",
    # Engine
    "BondAuction",
    "AuctionHouse",
    "derive_auction_id",
    "derive_escrow_address",
]
