"""
Allowlist - identity registry for regulated bond holders.

A flat access-control map toggled by an administrator. Each change
carries a reference id (e.g. a KYC case number) recorded in the audit
history.
"""

from dataclasses import dataclass
from typing import Dict, List

from bondauction.core.errors import AuthorizationError, TokenError
from bondauction.crypto import ZERO_ADDRESS, bytes_to_hex
from bondauction.utils.logger import get_logger

logger = get_logger("allowlist")


@dataclass(frozen=True)
class AllowlistChange:
    """One audit record of the allowlist."""
    account: bytes
    added: bool
    reference_id: str


class Allowlist:
    """
    Allow-list keyed by account address.

    Args:
        admin: Address allowed to add and remove entries
    """

    def __init__(self, admin: bytes):
        self.admin = admin
        self._allowed: Dict[bytes, bool] = {}
        self.history: List[AllowlistChange] = []

    def is_allowed(self, account: bytes) -> bool:
        return self._allowed.get(account, False)

    def add_address(self, caller: bytes, account: bytes, reference_id: str = "") -> None:
        self._require_admin(caller)
        if account == ZERO_ADDRESS:
            raise TokenError("Cannot whitelist zero address")
        if self.is_allowed(account):
            raise TokenError("Address already whitelisted")

        self._allowed[account] = True
        self.history.append(AllowlistChange(account, True, reference_id))
        logger.info(f"Whitelisted {bytes_to_hex(account)} ({reference_id})")

    def remove_address(self, caller: bytes, account: bytes, reference_id: str = "") -> None:
        self._require_admin(caller)
        if not self.is_allowed(account):
            raise TokenError("Address not whitelisted")

        self._allowed[account] = False
        self.history.append(AllowlistChange(account, False, reference_id))
        logger.info(f"Removed {bytes_to_hex(account)} from whitelist ({reference_id})")

    def allowed_accounts(self) -> List[bytes]:
        return [account for account, allowed in self._allowed.items() if allowed]

    def _require_admin(self, caller: bytes) -> None:
        if caller != self.admin:
            raise AuthorizationError("Caller is not the allowlist admin")
