"""Keychain — private keys indexed by their derived address."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dag_wallet.ava.cb58 import cb58_encode

if TYPE_CHECKING:
    from dag_wallet.ava.codec import Output
    from dag_wallet.ava.keys import PrivateKey


class Keychain:
    """A set of private keys; address derivation is a pure function of the key."""

    def __init__(self) -> None:
        self._keys: dict[bytes, PrivateKey] = {}

    def add(self, key: PrivateKey) -> bytes:
        """Add *key*, returning its address. Re-adding the same key is a no-op."""
        address = key.address
        self._keys[address] = key
        return address

    def get(self, address: bytes) -> PrivateKey | None:
        return self._keys.get(address)

    def addresses(self) -> list[bytes]:
        """Addresses of every held key, in ascending byte order."""
        return sorted(self._keys)

    def address_strings(self) -> list[str]:
        return [cb58_encode(a) for a in self.addresses()]

    def spenders(self, output: Output, now: int) -> tuple[tuple[int, ...], list[PrivateKey]] | None:
        """Find the keys able to spend *output* at time *now*.

        Returns:
            ``(sig_indices, keys)`` for the first ``threshold`` owning
            addresses held by this keychain, or None if the output is still
            locked or too few of its keys are held.
        """
        if output.locktime > now:
            return None
        indices: list[int] = []
        keys: list[PrivateKey] = []
        for idx, address in enumerate(output.addresses):
            if len(indices) == output.threshold:
                break
            key = self._keys.get(address)
            if key is not None:
                indices.append(idx)
                keys.append(key)
        if len(indices) < output.threshold:
            return None
        return tuple(indices), keys

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, address: object) -> bool:
        return address in self._keys
