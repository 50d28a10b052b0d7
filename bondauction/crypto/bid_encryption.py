"""
Bid Encryption - Confidential transport of sealed bids to the issuer.

A commitment hides a bid from everyone, including the issuer, until the
reveal phase. Bidders additionally encrypt the real (price, quantity, salt)
tuple under the issuer's public key and attach the ciphertext to their
commitment, so the issuer can monitor demand during the commit phase
while competitors cannot.

The auction engine never looks inside the ciphertext; it only stores and
returns it. Encryption is therefore a pluggable capability:

    encrypt(public_key, payload) -> ciphertext
    decrypt(private_key, ciphertext) -> payload

The default capability is RSA-OAEP with SHA-256 over DER-encoded keys
(SubjectPublicKeyInfo / PKCS#8), matching Node's crypto.publicEncrypt with
RSA_PKCS1_OAEP_PADDING and oaepHash='sha256'.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from Crypto.Cipher import PKCS1_OAEP
from Crypto.Hash import SHA256
from Crypto.PublicKey import RSA

from bondauction.crypto import (
    bytes_to_hex,
    generate_salt,
    hash_bid_commitment,
    hex_to_bytes,
)
from bondauction.utils.logger import get_logger

logger = get_logger("encryption")


DEFAULT_RSA_BITS = 2048


# =============================================================================
# Cipher Capability
# =============================================================================


@runtime_checkable
class BidCipher(Protocol):
    """Asymmetric encryption capability used for bid confidentiality."""

    def encrypt(self, public_key: bytes, payload: bytes) -> bytes:
        ...

    def decrypt(self, private_key: bytes, ciphertext: bytes) -> bytes:
        ...


class RsaOaepCipher:
    """RSA-OAEP (SHA-256, MGF1-SHA-256) over DER-encoded keys."""

    def encrypt(self, public_key: bytes, payload: bytes) -> bytes:
        key = RSA.import_key(public_key)
        return PKCS1_OAEP.new(key, hashAlgo=SHA256).encrypt(payload)

    def decrypt(self, private_key: bytes, ciphertext: bytes) -> bytes:
        key = RSA.import_key(private_key)
        return PKCS1_OAEP.new(key, hashAlgo=SHA256).decrypt(ciphertext)


@dataclass
class IssuerKeyPair:
    """DER-encoded RSA keypair held by the auction issuer."""
    public_key: bytes   # SubjectPublicKeyInfo
    private_key: bytes  # PKCS#8

    @property
    def public_key_hex(self) -> str:
        return bytes_to_hex(self.public_key)


def generate_issuer_keypair(bits: int = DEFAULT_RSA_BITS) -> IssuerKeyPair:
    """Generate an RSA keypair for an auction."""
    key = RSA.generate(bits)
    return IssuerKeyPair(
        public_key=key.publickey().export_key(format="DER"),
        private_key=key.export_key(format="DER", pkcs=8),
    )


def _as_key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return hex_to_bytes(key)
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise ValueError("Invalid key format")


# =============================================================================
# Bidder Side
# =============================================================================


@dataclass
class PreparedBid:
    """Everything a bidder submits now and must keep for the reveal."""
    bidder: bytes
    price: int
    quantity: int
    salt: int
    commitment: bytes
    encrypted_bid: bytes


class BidEncryption:
    """
    Encrypts bids for the issuer and builds matching commitments.

    Args:
        issuer_public_key: DER bytes or 0x-prefixed hex of the issuer key
        cipher: Encryption capability (RSA-OAEP by default)
    """

    def __init__(self, issuer_public_key: Any, cipher: Optional[BidCipher] = None):
        self.issuer_public_key = _as_key_bytes(issuer_public_key)
        self.cipher = cipher or RsaOaepCipher()

    def encrypt_bid(self, price: int, quantity: int, salt: int) -> bytes:
        """
        Encrypt the bid tuple under the issuer's public key.

        The plaintext is JSON with decimal-string values and a millisecond
        timestamp, so it survives round trips through JavaScript tooling.
        """
        bid_data = {
            "price": str(price),
            "quantity": str(quantity),
            "salt": str(salt),
            "timestamp": int(time.time() * 1000),
        }
        # Compact separators: RSA-2048 OAEP-SHA256 fits at most 190 bytes
        plaintext = json.dumps(bid_data, separators=(",", ":")).encode("utf-8")
        try:
            return self.cipher.encrypt(self.issuer_public_key, plaintext)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Failed to encrypt bid: {e}") from e

    def generate_commitment(self, bidder: bytes, price: int, quantity: int, salt: int) -> bytes:
        """Commitment hash the engine will check at reveal time."""
        return hash_bid_commitment(bidder, price, quantity, salt)

    def generate_salt(self) -> int:
        return generate_salt()

    def prepare_bid(self, bidder: bytes, price: int, quantity: int) -> PreparedBid:
        """Produce commitment and ciphertext for a fresh bid with a random salt."""
        salt = self.generate_salt()
        return PreparedBid(
            bidder=bidder,
            price=price,
            quantity=quantity,
            salt=salt,
            commitment=self.generate_commitment(bidder, price, quantity, salt),
            encrypted_bid=self.encrypt_bid(price, quantity, salt),
        )


# =============================================================================
# Issuer Side
# =============================================================================


class IssuerDecryption:
    """
    Lets the issuer read incoming bids before the reveal phase.

    Args:
        private_key: DER bytes or hex of the issuer's private key
        cipher: Encryption capability (RSA-OAEP by default)
    """

    def __init__(self, private_key: Any, cipher: Optional[BidCipher] = None):
        self.private_key = _as_key_bytes(private_key)
        self.cipher = cipher or RsaOaepCipher()

    def decrypt_bid(self, encrypted_bid: bytes) -> Optional[Dict[str, int]]:
        """
        Decrypt a bid ciphertext.

        Returns:
            {"price", "quantity", "salt", "timestamp"} as ints, or None if
            the ciphertext cannot be decrypted or parsed
        """
        try:
            plaintext = self.cipher.decrypt(self.private_key, bytes(encrypted_bid))
            data = json.loads(plaintext.decode("utf-8"))
            return {
                "price": int(data["price"]),
                "quantity": int(data["quantity"]),
                "salt": int(data["salt"]),
                "timestamp": int(data["timestamp"]),
            }
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Failed to decrypt bid: {e}")
            return None

    def bid_summary(self, events: Iterable[Any]) -> List[Dict[str, Any]]:
        """
        Decrypt every committed bid found in an event stream.

        Args:
            events: Audit events; only BidCommitted entries are considered

        Returns:
            One entry per commitment, with "decrypted" set to None where
            the ciphertext could not be read
        """
        from bondauction.core.events import BidCommitted

        summary = []
        for index, event in enumerate(e for e in events if isinstance(e, BidCommitted)):
            summary.append({
                "index": index,
                "bidder": event.bidder,
                "commitment": event.commitment,
                "decrypted": self.decrypt_bid(event.encrypted_bid),
            })
        return summary


__all__ = [
    "BidCipher",
    "RsaOaepCipher",
    "IssuerKeyPair",
    "generate_issuer_keypair",
    "PreparedBid",
    "BidEncryption",
    "IssuerDecryption",
]
