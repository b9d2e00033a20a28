"""secp256k1 spending keys — generation, addresses, recoverable signatures.

Key material for the wallet keychain:
- 32-byte private key scalars, textual form ``PrivateKey-<cb58>`` (prefix optional)
- Address derivation: RIPEMD160(SHA256(compressed public key))
- Deterministic (RFC 6979) low-S signatures with a trailing recovery byte,
  so verification only needs the signer's address, never the public key
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Self

from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.numbertheory import SquareRootError
from ecdsa.util import MalformedSignature, sigdecode_string, sigencode_string_canonize

from dag_wallet.ava.cb58 import cb58_decode, cb58_encode
from dag_wallet.errors.definitions import KeyImportError
from dag_wallet.utils.crypto import hash160

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
_CURVE_ORDER = _CURVE.order

PRIVATE_KEY_LEN = 32
SIGNATURE_LEN = 65  # r(32) || s(32) || recovery id(1)
PRIVATE_KEY_PREFIX = "PrivateKey-"


# ---------------------------------------------------------------------------
# Private key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrivateKey:
    """A secp256k1 private key and its derived address.

    Attributes:
        secret: 32-byte big-endian scalar.
    """

    secret: bytes
    _signing_key: SigningKey = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.secret) != PRIVATE_KEY_LEN:
            raise KeyImportError(
                f"invalid private key length: expected {PRIVATE_KEY_LEN}, got {len(self.secret)}"
            )
        scalar = int.from_bytes(self.secret, "big")
        if not 0 < scalar < _CURVE_ORDER:
            raise KeyImportError("private key out of range for secp256k1")
        object.__setattr__(
            self, "_signing_key", SigningKey.from_string(self.secret, curve=_CURVE)
        )

    @classmethod
    def generate(cls) -> Self:
        """Create a random private key."""
        return cls(SigningKey.generate(curve=_CURVE).to_string())

    @classmethod
    def from_string(cls, text: str) -> Self:
        """Parse the textual form (``PrivateKey-`` prefix optional).

        Raises:
            KeyImportError: If the text is not a valid CB58 secp256k1 key.
        """
        body = text.strip().removeprefix(PRIVATE_KEY_PREFIX)
        try:
            raw = cb58_decode(body)
        except ValueError as exc:
            raise KeyImportError(f"invalid private key encoding: {exc}") from exc
        return cls(raw)

    def to_string(self) -> str:
        """Encode as ``PrivateKey-<cb58>``."""
        return PRIVATE_KEY_PREFIX + cb58_encode(self.secret)

    @property
    def public_key(self) -> bytes:
        """33-byte compressed public key."""
        return self._signing_key.get_verifying_key().to_string("compressed")

    @property
    def address(self) -> bytes:
        """20-byte address (short ID) of the public key."""
        return hash160(self.public_key)

    def sign(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest, returning a 65-byte recoverable signature."""
        sig = self._signing_key.sign_digest_deterministic(
            digest, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize
        )
        public_key = self.public_key
        for recovery_id, candidate in enumerate(_recover_candidates(sig, digest)):
            if candidate.to_string("compressed") == public_key:
                return sig + bytes([recovery_id])
        msg = "signature does not recover to signing key"
        raise RuntimeError(msg)


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


def _recover_candidates(sig: bytes, digest: bytes) -> list[VerifyingKey]:
    return VerifyingKey.from_public_key_recovery_with_digest(
        sig, digest, _CURVE, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
    )


def recover_address(digest: bytes, signature: bytes) -> bytes | None:
    """Recover the signer's 20-byte address from a 65-byte signature.

    Returns:
        The address, or None if the signature is malformed.
    """
    if len(signature) != SIGNATURE_LEN:
        return None
    sig, recovery_id = signature[:-1], signature[-1]
    try:
        candidates = _recover_candidates(sig, digest)
    except (MalformedSignature, MalformedPointError, SquareRootError, ValueError):
        return None
    if recovery_id >= len(candidates):
        return None
    return hash160(candidates[recovery_id].to_string("compressed"))
