"""
Cryptographic primitives for the bond auction.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Account key generation and address derivation (secp256k1)
- The sealed-bid commitment hash

Design Notes:
-------------
Accounts follow Ethereum conventions so that addresses, commitments and
ciphertexts produced here are interchangeable with the ones produced by
ethers.js tooling: an address is the last 20 bytes of keccak256 of the
uncompressed public key, and a bid commitment is

    keccak256(bidder[20] || price[32] || quantity[32] || salt[32])

i.e. Solidity's abi.encodePacked(address, uint256, uint256, uint256).
"""

import hashlib
import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ZERO_ADDRESS = bytes(20)
ZERO_HASH = bytes(32)

UINT256_MAX = 2**256 - 1


# =============================================================================
# Hashing
# =============================================================================


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash.

    Used for: auction identifiers, content addressing.
    """
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation and bid commitments.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def uint256_to_bytes(value: int) -> bytes:
    """Encode a non-negative integer as a 32-byte big-endian word."""
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"Value {value} does not fit in uint256")
    return value.to_bytes(32, byteorder="big")


def hash_bid_commitment(bidder: bytes, price: int, quantity: int, salt: int) -> bytes:
    """
    Compute the binding commitment for a sealed bid.

    Args:
        bidder: 20-byte bidder address
        price: Bid price (18-decimal fixed point)
        quantity: Bid quantity (18-decimal fixed point)
        salt: Secret blinding value

    Returns:
        32-byte commitment
    """
    if len(bidder) != 20:
        raise ValueError(f"Bidder address must be 20 bytes, got {len(bidder)}")
    packed = (
        bytes(bidder)
        + uint256_to_bytes(price)
        + uint256_to_bytes(quantity)
        + uint256_to_bytes(salt)
    )
    return keccak256(packed)


def generate_salt() -> int:
    """Random 256-bit salt for a commitment."""
    return int.from_bytes(secrets.token_bytes(32), byteorder="big")


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> bytes:
        """20-byte account address derived from the public key."""
        return address_from_public_key(self.public_key)

    @property
    def address_hex(self) -> str:
        """Address as a 0x-prefixed hex string."""
        return bytes_to_hex(self.address)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    # P = k * G, returned as an (x, y) tuple of integers
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive address from public key (Ethereum-style).

    address = keccak256(public_key)[-20:]
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-20:]


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def short_hex(data: bytes, length: int = 10) -> str:
    """Abbreviated hex form used in log lines."""
    return bytes_to_hex(data)[:length] + "..."
