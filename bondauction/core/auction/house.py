"""
Auction House - creates bond auctions and looks them up by id.
"""

from typing import Dict, List, Optional

from bondauction.core.auction.engine import BondAuction
from bondauction.core.clock import Clock, SystemClock
from bondauction.core.config import AuctionConfig
from bondauction.core.tokens.ledger import InstrumentLedger, PaymentAsset
from bondauction.utils.logger import get_logger

logger = get_logger("house")


class AuctionHouse:
    """
    Registry of auctions issuing one bond against one payment asset.

    Args:
        bond_token: Instrument ledger shared by the auctions
        payment_token: Payment asset ledger
        config: Default durations and price scale
        clock: Time source shared by every auction
        storage_manager: Persistence manager. None = in-memory only.
    """

    def __init__(
        self,
        bond_token: InstrumentLedger,
        payment_token: PaymentAsset,
        config: Optional[AuctionConfig] = None,
        clock: Optional[Clock] = None,
        storage_manager=None,
    ):
        self.bond_token = bond_token
        self.payment_token = payment_token
        self.config = config or AuctionConfig()
        self.clock = clock or SystemClock()
        self.storage_manager = storage_manager

        self.auctions: Dict[bytes, BondAuction] = {}

    def initialize(
        self,
        operator: bytes,
        bond_supply: int,
        min_price: int,
        max_price: int,
        issuer_public_key: bytes,
        commit_duration: Optional[int] = None,
        reveal_duration: Optional[int] = None,
        claim_duration: Optional[int] = None,
    ) -> bytes:
        """
        Create an auction.

        Durations default to the configured ones.

        Returns:
            Auction id

        Raises:
            ConfigurationError: invalid parameters
        """
        auction = BondAuction(
            operator=operator,
            bond_token=self.bond_token,
            payment_token=self.payment_token,
            bond_supply=bond_supply,
            min_price=min_price,
            max_price=max_price,
            commit_duration=commit_duration if commit_duration is not None else self.config.commit_duration,
            reveal_duration=reveal_duration if reveal_duration is not None else self.config.reveal_duration,
            claim_duration=claim_duration if claim_duration is not None else self.config.claim_duration,
            issuer_public_key=issuer_public_key,
            clock=self.clock,
            storage_manager=self.storage_manager,
            price_scale=self.config.price_scale,
        )
        self.auctions[auction.auction_id] = auction
        return auction.auction_id

    def get(self, auction_id: bytes) -> BondAuction:
        """Look up an auction; KeyError if unknown."""
        auction = self.auctions.get(auction_id)
        if auction is None:
            raise KeyError(f"Unknown auction {auction_id.hex()[:16]}...")
        return auction

    def active_auctions(self) -> List[BondAuction]:
        """Auctions still accepting commits, reveals or claims."""
        now = self.clock.now()
        return [
            a for a in self.auctions.values()
            if a.phase.accepting_commits(now)
            or a.phase.accepting_reveals(now)
            or a.phase.accepting_claims(now)
        ]

    def __len__(self) -> int:
        return len(self.auctions)

    def __contains__(self, auction_id: bytes) -> bool:
        return auction_id in self.auctions
