"""
Input Validation - Sanitization of everything that enters the auction.

Callers, token ledgers and the encryption utility hand the engine raw
Python values. These helpers check shape and bounds before any state is
touched and report problems as (is_valid, error_message) tuples; the
engine turns a failed check into the matching AuctionError.
"""

from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

ADDRESS_SIZE = 20
HASH_SIZE = 32
MAX_ENCRYPTED_BID_SIZE = 4096  # RSA-4096 ciphertext is 512 bytes
MAX_PUBLIC_KEY_SIZE = 4096

# uint256 bounds (the commitment preimage packs values as 32-byte words)
MIN_UINT = 0
MAX_UINT256 = 2**256 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
    allow_empty: bool = True,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length
        allow_empty: Whether a zero-length value is acceptable

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if not allow_empty and len(data) == 0:
        return False, f"{name} must not be empty"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte account address."""
    return validate_bytes(address, name, expected_length=ADDRESS_SIZE)


def validate_hash(hash_value: Any, name: str = "hash") -> Tuple[bool, str]:
    """Validate a 32-byte hash value."""
    return validate_bytes(hash_value, name, expected_length=HASH_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_UINT,
    max_val: int = MAX_UINT256,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Booleans are rejected even though they subclass int.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_uint256(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a value that must fit a 32-byte unsigned word."""
    return validate_integer(value, name, MIN_UINT, MAX_UINT256)


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a token amount."""
    return validate_uint256(amount, name)


def validate_duration(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a phase duration in seconds (strictly positive)."""
    return validate_integer(value, name, 1, MAX_UINT256)


# =============================================================================
# Composite Validators
# =============================================================================


def validate_auction_params(
    bond_supply: Any,
    min_price: Any,
    max_price: Any,
    issuer_public_key: Any,
) -> Tuple[bool, str]:
    """Validate the immutable auction parameters supplied at creation."""
    valid, err = validate_integer(bond_supply, "bond_supply", 1, MAX_UINT256)
    if not valid:
        return False, err

    for value, name in ((min_price, "min_price"), (max_price, "max_price")):
        valid, err = validate_uint256(value, name)
        if not valid:
            return False, err

    if min_price >= max_price:
        return False, "Invalid price range"

    valid, err = validate_bytes(
        issuer_public_key,
        "issuer_public_key",
        max_length=MAX_PUBLIC_KEY_SIZE,
        allow_empty=False,
    )
    if not valid:
        return False, "Invalid public key"

    return True, ""


def validate_bid(
    price: Any,
    quantity: Any,
    min_price: int,
    max_price: int,
) -> Tuple[bool, str]:
    """
    Check a bid before it is committed.

    Mirrors the checks the engine applies at reveal time so a bidder can
    find out before committing that the bid would be rejected.
    """
    valid, err = validate_uint256(quantity, "quantity")
    if not valid:
        return False, err
    if quantity == 0:
        return False, "Quantity must be greater than zero"

    valid, err = validate_uint256(price, "price")
    if not valid:
        return False, err
    if price < min_price:
        return False, f"Price {price} is below minimum {min_price}"
    if price > max_price:
        return False, f"Price {price} is above maximum {max_price}"

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_hash",
    "validate_integer",
    "validate_uint256",
    "validate_amount",
    "validate_duration",
    "validate_auction_params",
    "validate_bid",
    "ADDRESS_SIZE",
    "HASH_SIZE",
    "MAX_ENCRYPTED_BID_SIZE",
    "MAX_PUBLIC_KEY_SIZE",
    "MAX_UINT256",
]
