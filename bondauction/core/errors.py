"""
Error taxonomy for the bond auction.

Every rejection is raised before any state is mutated, so a caught
AuctionError always means the auction is exactly as it was before the
call. Nothing is retried by the engine.
"""


class AuctionError(Exception):
    """Base class for rejected auction operations."""


class PhaseError(AuctionError):
    """Operation attempted outside its phase or time window."""


class CommitmentError(AuctionError):
    """Duplicate commitment or malformed commitment payload."""


class RevealError(AuctionError):
    """Reveal does not match the commitment or violates bid bounds."""


class SettlementError(AuctionError):
    """Claim or withdrawal cannot be settled."""


class AuthorizationError(AuctionError):
    """Caller lacks the privilege the operation requires."""


class ConfigurationError(AuctionError, ValueError):
    """Auction parameters rejected at creation time."""


class TokenError(Exception):
    """Token ledger rejected a privileged operation (mint, role change)."""


__all__ = [
    "AuctionError",
    "PhaseError",
    "CommitmentError",
    "RevealError",
    "SettlementError",
    "AuthorizationError",
    "ConfigurationError",
    "TokenError",
]
