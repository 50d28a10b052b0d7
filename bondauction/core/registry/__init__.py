"""Identity registry (allowlist)"""
from bondauction.core.registry.allowlist import Allowlist, AllowlistChange

__all__ = ["Allowlist", "AllowlistChange"]
