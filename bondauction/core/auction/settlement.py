"""
Settlement Ledger - payment collection, bond issuance and proceeds.

A winner's claim is two external calls:

1. pull allocation * clearing_price / scale of the payment asset from
   the bidder into the auction's escrow account;
2. mint allocation bonds to the bidder.

The claimed flag is set between the two, so a mint implementation that
calls back into the auction cannot claim a second time. If the mint
fails the claim is unwound (payment refunded, flag cleared) and the
failure propagates, leaving both ledgers as they were. If the refund
itself fails, a SettlementError chained to the mint failure reports the
payment left in escrow.
"""

from typing import Dict

from bondauction.core.config import PRICE_SCALE
from bondauction.core.errors import SettlementError
from bondauction.core.tokens.ledger import InstrumentLedger, PaymentAsset
from bondauction.crypto import bytes_to_hex
from bondauction.utils.logger import get_logger

logger = get_logger("settlement")


def calculate_payment(allocation: int, clearing_price: int, scale: int = PRICE_SCALE) -> int:
    """Payment owed for an allocation at the clearing price (floor)."""
    return allocation * clearing_price // scale


class SettlementLedger:
    """
    Collects payments into escrow and issues bonds to winners.

    Args:
        escrow: Account that holds collected payments and the minter role
        payment_asset: Payment token ledger
        bond_token: Instrument ledger
        price_scale: Fixed-point scale of prices
    """

    def __init__(
        self,
        escrow: bytes,
        payment_asset: PaymentAsset,
        bond_token: InstrumentLedger,
        price_scale: int = PRICE_SCALE,
    ):
        self.escrow = escrow
        self.payment_asset = payment_asset
        self.bond_token = bond_token
        self.price_scale = price_scale

        self.payments: Dict[bytes, int] = {}
        self.total_collected = 0
        self.total_withdrawn = 0

    def check_claim(self, bid) -> None:
        """
        Raises:
            SettlementError: no allocation, unrevealed bid or double claim
        """
        if bid.allocation == 0:
            raise SettlementError("No allocation")
        if not bid.revealed:
            raise SettlementError("Bid not revealed")
        if bid.claimed:
            raise SettlementError("Already claimed")

    def claim(self, bidder: bytes, bid, clearing_price: int) -> int:
        """
        Settle a winning bid.

        Args:
            bidder: Claiming account
            bid: The bidder's live record (its claimed flag is updated)
            clearing_price: Uniform clearing price

        Returns:
            Payment collected

        Raises:
            SettlementError: no allocation, unrevealed bid, double claim,
                failed payment, or a failed mint whose refund also failed
        """
        self.check_claim(bid)

        payment = calculate_payment(bid.allocation, clearing_price, self.price_scale)

        if not self.payment_asset.transfer_from(self.escrow, bidder, self.escrow, payment):
            logger.warning(f"Payment of {payment} failed for {bytes_to_hex(bidder)[:10]}...")
            raise SettlementError("Payment failed")

        bid.claimed = True
        try:
            self.bond_token.mint(self.escrow, bidder, bid.allocation)
        except Exception as exc:
            bid.claimed = False
            if not self.payment_asset.transfer(self.escrow, bidder, payment):
                logger.error(f"Refund of {payment} to {bytes_to_hex(bidder)[:10]}... failed")
                raise SettlementError(f"Refund failed after mint failure: {payment} held in escrow") from exc
            raise

        self.payments[bidder] = payment
        self.total_collected += payment
        return payment

    def withdraw(self, operator: bytes) -> int:
        """
        Sweep the whole escrow balance to the operator.

        Returns:
            Amount transferred
        """
        amount = self.payment_asset.balance_of(self.escrow)
        if not self.payment_asset.transfer(self.escrow, operator, amount):
            raise SettlementError("Withdrawal failed")
        self.total_withdrawn += amount
        return amount

    def escrow_balance(self) -> int:
        return self.payment_asset.balance_of(self.escrow)

    def stats(self) -> dict:
        return {
            "claims": len(self.payments),
            "total_collected": self.total_collected,
            "total_withdrawn": self.total_withdrawn,
            "escrow_balance": self.escrow_balance(),
        }


__all__ = ["calculate_payment", "SettlementLedger"]
