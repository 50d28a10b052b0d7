"""Payment and instrument token ledgers"""
from bondauction.core.tokens.ledger import (
    PaymentAsset,
    InstrumentLedger,
    TokenLedger,
    PaymentToken,
    BondToken,
    DEFAULT_ADMIN_ROLE,
    MINTER_ROLE,
)

__all__ = [
    "PaymentAsset",
    "InstrumentLedger",
    "TokenLedger",
    "PaymentToken",
    "BondToken",
    "DEFAULT_ADMIN_ROLE",
    "MINTER_ROLE",
]
