"""
Clearing - uniform-price allocation of a fixed bond supply.

Given every disclosed bid, compute one clearing price and an allocation
per bidder:

1. Order bidders by descending price. The sort is stable, so bidders at
   the same price stay in commit order; unrevealed bids count as price 0
   and sink to the end.
2. Walk the order filling bids completely while supply lasts. Each full
   fill moves the marginal price down to that bid's price.
3. The first bid that does not fit sets the marginal price. It and every
   later revealed bid at exactly that price form the marginal group,
   which shares what is left pro rata:

       allocation = quantity * remaining // marginal_demand

Bidders at the marginal price that were filled before supply ran short
keep their full fill; only the group from the shortfall onward is scaled.
Floor division can leave a few units of rounding dust unallocated, and
total_allocated is reported before that dust is subtracted.

All arithmetic is exact integer arithmetic on fixed-point values.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from bondauction.utils.logger import get_logger

logger = get_logger("clearing")


@dataclass
class ClearingResult:
    """
    Output of one clearing run.

    Attributes:
        clearing_price: Uniform price paid by every winner
        total_allocated: Supply handed out, counting the pro-rata share
            in full (rounding dust is not subtracted)
        allocations: bidder -> awarded quantity (zero entries omitted)
        marginal_bidders: Bidders scaled pro rata, in walk order
        marginal_demand: Summed quantity of the marginal group
        remaining_supply: Supply left for the marginal group when the
            walk stopped (unsold supply if there was no shortfall)
    """
    clearing_price: int
    total_allocated: int
    allocations: Dict[bytes, int] = field(default_factory=dict)
    marginal_bidders: List[bytes] = field(default_factory=list)
    marginal_demand: int = 0
    remaining_supply: int = 0

    @property
    def allocated_sum(self) -> int:
        """Literal sum of allocations (may trail total_allocated by dust)."""
        return sum(self.allocations.values())

    @property
    def rounding_dust(self) -> int:
        return self.total_allocated - self.allocated_sum


def sort_by_price(bidders: Sequence[bytes], bids: Mapping) -> List[bytes]:
    """Stable descending-price order; unrevealed bids rank as price 0."""
    return sorted(
        bidders,
        key=lambda bidder: bids[bidder].price if bids[bidder].revealed else 0,
        reverse=True,
    )


def compute_clearing(
    bond_supply: int,
    min_price: int,
    bidders: Sequence[bytes],
    bids: Mapping,
) -> ClearingResult:
    """
    Clear the auction.

    Args:
        bond_supply: Total quantity on offer
        min_price: Reserve price; clearing price when nothing is filled
        bidders: Registry in commit order
        bids: bidder -> record with price, quantity, revealed

    Returns:
        ClearingResult (inputs are not modified)
    """
    ordered = sort_by_price(bidders, bids)

    remaining = bond_supply
    marginal_price = min_price
    marginal_demand = 0
    marginal_bidders: List[bytes] = []
    allocations: Dict[bytes, int] = {}

    for position, bidder in enumerate(ordered):
        bid = bids[bidder]
        if not bid.revealed:
            continue

        if remaining >= bid.quantity:
            allocations[bidder] = bid.quantity
            remaining -= bid.quantity
            marginal_price = bid.price
            continue

        # Demand exceeds what is left: collect the tie group from here on
        marginal_price = bid.price
        for other in ordered[position:]:
            other_bid = bids[other]
            if other_bid.revealed and other_bid.price == marginal_price:
                marginal_bidders.append(other)
                marginal_demand += other_bid.quantity
        break

    unfilled = remaining
    if marginal_demand > 0 and remaining > 0:
        for bidder in marginal_bidders:
            share = bids[bidder].quantity * remaining // marginal_demand
            if share > 0:
                allocations[bidder] = share
        # The marginal group is credited with all of it, dust included
        remaining = 0

    result = ClearingResult(
        clearing_price=marginal_price,
        total_allocated=bond_supply - remaining,
        allocations=allocations,
        marginal_bidders=marginal_bidders,
        marginal_demand=marginal_demand,
        remaining_supply=unfilled,
    )

    if result.rounding_dust:
        logger.debug(f"Pro-rata rounding left {result.rounding_dust} units unallocated")
    logger.debug(
        f"Cleared at {result.clearing_price}: {len(allocations)} winners, "
        f"{len(marginal_bidders)} pro-rata, total_allocated={result.total_allocated}"
    )
    return result


__all__ = [
    "ClearingResult",
    "sort_by_price",
    "compute_clearing",
]
