"""
Token Ledgers - fungible balances the auction settles against.

The engine talks to two ledgers through narrow interfaces:

1. **Payment asset** (PaymentAsset): pulled from bidders with
   transfer_from at claim time, swept to the operator with transfer.
   Both return a boolean success flag instead of raising.
2. **Instrument ledger** (InstrumentLedger): the bond token, minted to
   winners by the auction, which holds the minter role.

TokenLedger is an in-memory account-balance ledger with ERC-20 style
allowances. PaymentToken adds an open faucet (a mock stable coin) and
BondToken adds a supply cap, bond metadata, role-gated minting and
optional allowlist enforcement.
"""

from typing import Dict, Protocol, Set, Tuple, runtime_checkable

from bondauction.core.errors import AuthorizationError, TokenError
from bondauction.crypto import ZERO_ADDRESS, bytes_to_hex, keccak256
from bondauction.utils.logger import get_logger

logger = get_logger("tokens")


# =============================================================================
# Interfaces
# =============================================================================


@runtime_checkable
class PaymentAsset(Protocol):
    """Escrow rail used for bid payments."""

    def transfer(self, sender: bytes, to: bytes, amount: int) -> bool:
        ...

    def transfer_from(self, spender: bytes, owner: bytes, to: bytes, amount: int) -> bool:
        ...

    def balance_of(self, account: bytes) -> int:
        ...


@runtime_checkable
class InstrumentLedger(Protocol):
    """Ledger of the auctioned instrument; mint is role-gated."""

    def mint(self, caller: bytes, to: bytes, amount: int) -> None:
        ...


# =============================================================================
# Token Ledger
# =============================================================================


class TokenLedger:
    """
    Fungible token balances with allowances.

    Attributes:
        name: Token name
        symbol: Ticker symbol
        decimals: Display decimals (amounts are always base units)
    """

    def __init__(self, name: str, symbol: str, decimals: int = 18):
        self.name = name
        self.symbol = symbol
        self.decimals = decimals

        self._balances: Dict[bytes, int] = {}
        self._allowances: Dict[Tuple[bytes, bytes], int] = {}
        self._total_supply = 0

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: bytes) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self._allowances.get((owner, spender), 0)

    def holders(self) -> Dict[bytes, int]:
        """All accounts with a non-zero balance."""
        return {account: bal for account, bal in self._balances.items() if bal > 0}

    # =========================================================================
    # Transfers
    # =========================================================================

    def approve(self, owner: bytes, spender: bytes, amount: int) -> bool:
        if amount < 0 or spender == ZERO_ADDRESS:
            return False
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: bytes, to: bytes, amount: int) -> bool:
        """Move `amount` from `sender` to `to`. Returns False on failure."""
        if not self._can_move(sender, to, amount):
            return False
        self._before_transfer(sender, to)
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: bytes, owner: bytes, to: bytes, amount: int) -> bool:
        """Move `amount` from `owner` to `to` against `spender`'s allowance."""
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            logger.debug(f"{self.symbol}: allowance {allowed} < {amount} for {bytes_to_hex(owner)[:10]}...")
            return False
        if not self._can_move(owner, to, amount):
            return False
        self._before_transfer(owner, to)
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _can_move(self, sender: bytes, to: bytes, amount: int) -> bool:
        if amount < 0 or to == ZERO_ADDRESS:
            return False
        return self.balance_of(sender) >= amount

    def _before_transfer(self, sender: bytes, to: bytes) -> None:
        """Hook for subclasses enforcing transfer restrictions."""

    def _move(self, sender: bytes, to: bytes, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[to] = self.balance_of(to) + amount

    def _mint(self, to: bytes, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise TokenError("Cannot mint to zero address")
        if amount < 0:
            raise TokenError("Cannot mint a negative amount")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, supply={self._total_supply})"


class PaymentToken(TokenLedger):
    """Payment asset with an unrestricted faucet (mock stable coin)."""

    def __init__(self, name: str = "Mock USD Coin", symbol: str = "USDC", decimals: int = 18):
        super().__init__(name, symbol, decimals)

    def mint(self, to: bytes, amount: int) -> None:
        self._mint(to, amount)


# =============================================================================
# Bond Token
# =============================================================================

DEFAULT_ADMIN_ROLE = bytes(32)
MINTER_ROLE = keccak256(b"MINTER_ROLE")


class BondToken(TokenLedger):
    """
    Capped, mintable bond instrument.

    Args:
        admin: Holder of DEFAULT_ADMIN_ROLE (may grant/revoke roles)
        name: Bond name
        symbol: Bond ticker
        cap: Maximum total supply
        maturity_date: Unix timestamp of maturity
        face_value: Face value per bond
        coupon_rate: Annual coupon in basis points (250 = 2.5%)
        allowlist: Optional identity registry; when set, every recipient
            and every sender must be allowed
    """

    def __init__(
        self,
        admin: bytes,
        name: str,
        symbol: str,
        cap: int,
        maturity_date: int = 0,
        face_value: int = 100,
        coupon_rate: int = 0,
        allowlist=None,
    ):
        super().__init__(name, symbol, 18)
        if cap <= 0:
            raise TokenError("Cap must be positive")
        self.cap = cap
        self.maturity_date = maturity_date
        self.face_value = face_value
        self.coupon_rate = coupon_rate
        self.allowlist = allowlist

        self._roles: Dict[bytes, Set[bytes]] = {DEFAULT_ADMIN_ROLE: {admin}}

    # =========================================================================
    # Roles
    # =========================================================================

    def has_role(self, role: bytes, account: bytes) -> bool:
        return account in self._roles.get(role, set())

    def grant_role(self, caller: bytes, role: bytes, account: bytes) -> None:
        self._require_admin(caller)
        self._roles.setdefault(role, set()).add(account)
        logger.info(f"{self.symbol}: granted role {bytes_to_hex(role)[:10]}... to {bytes_to_hex(account)}")

    def revoke_role(self, caller: bytes, role: bytes, account: bytes) -> None:
        self._require_admin(caller)
        self._roles.get(role, set()).discard(account)

    def _require_admin(self, caller: bytes) -> None:
        if not self.has_role(DEFAULT_ADMIN_ROLE, caller):
            raise AuthorizationError("Caller is missing the admin role")

    # =========================================================================
    # Minting
    # =========================================================================

    def mint(self, caller: bytes, to: bytes, amount: int) -> None:
        if not self.has_role(MINTER_ROLE, caller):
            raise AuthorizationError("Caller is missing the minter role")
        if self._total_supply + amount > self.cap:
            raise TokenError("cap exceeded")
        if self.allowlist is not None and not self.allowlist.is_allowed(to):
            raise TokenError("Recipient not whitelisted")
        self._mint(to, amount)
        logger.debug(f"{self.symbol}: minted {amount} to {bytes_to_hex(to)[:10]}...")

    def _before_transfer(self, sender: bytes, to: bytes) -> None:
        if self.allowlist is None:
            return
        if not self.allowlist.is_allowed(sender):
            raise TokenError("Sender not whitelisted")
        if not self.allowlist.is_allowed(to):
            raise TokenError("Recipient not whitelisted")


__all__ = [
    "PaymentAsset",
    "InstrumentLedger",
    "TokenLedger",
    "PaymentToken",
    "BondToken",
    "DEFAULT_ADMIN_ROLE",
    "MINTER_ROLE",
]
