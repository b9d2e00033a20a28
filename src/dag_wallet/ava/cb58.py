"""CB58 textual encoding — Base58 with a 4-byte SHA-256 checksum.

Every byte payload that crosses the RPC boundary (addresses, IDs, keys,
serialized transactions and UTXOs) is carried as a CB58 string:
- Base58 encoding / decoding (Bitcoin alphabet)
- CB58 = Base58(payload || SHA256(payload)[-4:])
- Parsing helpers for 32-byte IDs, 20-byte addresses and chain-prefixed
  addresses (``X-<cb58>``)
"""

from __future__ import annotations

from dag_wallet.errors.definitions import InvalidAddressError
from dag_wallet.utils.crypto import sha256

ID_LEN = 32
SHORT_ID_LEN = 20
CHECKSUM_LEN = 4

# ---------------------------------------------------------------------------
# Base58 encoding / decoding
# ---------------------------------------------------------------------------

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_CHARS = _B58_ALPHABET.decode("ascii")


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode a Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: If the string contains characters outside the alphabet.
    """
    n = 0
    for char in s:
        idx = _B58_CHARS.find(char)
        if idx < 0:
            msg = f"Invalid Base58 character: {char!r}"
            raise ValueError(msg)
        n = n * 58 + idx
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_count = 0
    for char in s:
        if char == "1":
            pad_count += 1
        else:
            break
    return b"\x00" * pad_count + result


# ---------------------------------------------------------------------------
# CB58
# ---------------------------------------------------------------------------


def cb58_encode(payload: bytes) -> str:
    """Encode bytes with a trailing 4-byte SHA-256 checksum."""
    return base58_encode(payload + sha256(payload)[-CHECKSUM_LEN:])


def cb58_decode(s: str) -> bytes:
    """Decode a CB58 string, verifying the checksum.

    Raises:
        ValueError: If the string is malformed or the checksum is invalid.
    """
    raw = base58_decode(s)
    if len(raw) < CHECKSUM_LEN:
        msg = "CB58 string too short"
        raise ValueError(msg)
    payload, checksum = raw[:-CHECKSUM_LEN], raw[-CHECKSUM_LEN:]
    if sha256(payload)[-CHECKSUM_LEN:] != checksum:
        msg = "CB58 checksum mismatch"
        raise ValueError(msg)
    return payload


# ---------------------------------------------------------------------------
# IDs and addresses
# ---------------------------------------------------------------------------


def parse_id(text: str) -> bytes:
    """Parse a 32-byte ID (tx ID, chain ID).

    A 20-byte short ID is widened to 32 bytes by zero padding.

    Raises:
        InvalidAddressError: If the text is not a valid CB58 ID.
    """
    try:
        raw = cb58_decode(text.strip())
    except ValueError as exc:
        raise InvalidAddressError(f"invalid ID {text!r}: {exc}") from exc
    if len(raw) == SHORT_ID_LEN:
        return raw + b"\x00" * (ID_LEN - SHORT_ID_LEN)
    if len(raw) != ID_LEN:
        raise InvalidAddressError(f"invalid ID {text!r}: expected {ID_LEN} bytes, got {len(raw)}")
    return raw


def parse_address(text: str) -> bytes:
    """Parse a 20-byte address, with or without a chain alias prefix.

    ``X-6Y3kysjF9jnHnYkdS9yGAuoHyae2eNmeV`` and ``6Y3kysjF9jnHnYkdS9yGAuoHyae2eNmeV``
    decode to the same address.

    Raises:
        InvalidAddressError: If the text is not a valid CB58 address.
    """
    body = text.strip().rsplit("-", 1)[-1]
    if not body:
        raise InvalidAddressError(f"invalid address: {text!r}")
    try:
        raw = cb58_decode(body)
    except ValueError as exc:
        raise InvalidAddressError(f"invalid address {text!r}: {exc}") from exc
    if len(raw) != SHORT_ID_LEN:
        raise InvalidAddressError(
            f"invalid address {text!r}: expected {SHORT_ID_LEN} bytes, got {len(raw)}"
        )
    return raw


def format_address(address: bytes, chain_alias: str = "") -> str:
    """Render a 20-byte address, optionally prefixed with a chain alias."""
    encoded = cb58_encode(address)
    return f"{chain_alias}-{encoded}" if chain_alias else encoded
