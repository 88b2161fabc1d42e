"""The chacha20-poly1305 transport cipher with its two-key construction."""

from __future__ import annotations

import hmac

from cryptography.hazmat.primitives.ciphers import Cipher as _Primitive
from cryptography.hazmat.primitives.ciphers.algorithms import ChaCha20
from cryptography.hazmat.primitives.poly1305 import Poly1305

from .cipher import (
    MINIMUM_PACKET_LEN,
    PACKET_LENGTH_LEN,
    PADDING_LENGTH_LEN,
    Cipher,
    DecryptionError,
    MacAlgorithm,
    OpeningKey,
    SealingKey,
)

KEY_LEN = 32
NONCE_LEN = 8
TAG_LEN = 16
_BLOCK_SIZE = 8


def _keystream(key: bytes, nonce: bytes, block: int, data: bytes) -> bytes:
    """Apply the 64-bit-counter ChaCha20 keystream starting at ``block``."""
    full_nonce = block.to_bytes(8, "little") + nonce
    return _Primitive(ChaCha20(key, full_nonce), mode=None).encryptor().update(bytes(data))


def make_counter(sequence_number: int) -> bytes:
    """Return the 8-byte nonce for a packet sequence number."""
    return bytes(NONCE_LEN - 4) + (sequence_number & 0xFFFFFFFF).to_bytes(4, "big")


def compute_poly1305(nonce: bytes, key: bytes, data: bytes) -> bytes:
    """Return the Poly1305 tag of ``data`` under the key derived from ``key``."""
    poly_key = _keystream(key, nonce, 0, bytes(32))
    return Poly1305.generate_tag(poly_key, bytes(data))


def _split_key(key: bytes) -> tuple[bytes, bytes]:
    key = bytes(key)
    if len(key) != 2 * KEY_LEN:
        raise ValueError(f"key must be {2 * KEY_LEN} bytes, got {len(key)}")
    return key[KEY_LEN:], key[:KEY_LEN]


class ChaChaOpeningKey(OpeningKey):
    """Receiving key: ``k1`` encrypts lengths, ``k2`` the packet body and tag."""

    def __init__(self, k1: bytes, k2: bytes) -> None:
        self._k1 = k1
        self._k2 = k2

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        if len(encrypted_packet_length) != PACKET_LENGTH_LEN:
            raise ValueError(
                f"expected {PACKET_LENGTH_LEN} length bytes, got {len(encrypted_packet_length)}"
            )
        return _keystream(self._k1, make_counter(seqn), 0, encrypted_packet_length)

    def tag_len(self) -> int:
        return TAG_LEN

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        nonce = make_counter(seqn)
        expected = compute_poly1305(nonce, self._k2, ciphertext)
        if not hmac.compare_digest(expected, bytes(tag)):
            raise DecryptionError()
        return _keystream(self._k2, nonce, 1, bytes(ciphertext)[PACKET_LENGTH_LEN:])


class ChaChaSealingKey(SealingKey):
    """Sending key: ``k1`` encrypts lengths, ``k2`` the packet body and tag."""

    def __init__(self, k1: bytes, k2: bytes) -> None:
        self._k1 = k1
        self._k2 = k2

    def padding_length(self, payload: bytes) -> int:
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN
        else:
            padding = _BLOCK_SIZE - ((PADDING_LENGTH_LEN + len(payload)) % _BLOCK_SIZE)
        return padding + _BLOCK_SIZE if padding < PACKET_LENGTH_LEN else padding

    def fill_padding(self, length: int) -> bytes:
        # Stateful counter-mode encryption needs no random padding.
        return bytes(length)

    def tag_len(self) -> int:
        return TAG_LEN

    def seal(self, seqn: int, plaintext: bytes) -> tuple[bytes, bytes]:
        plaintext = bytes(plaintext)
        nonce = make_counter(seqn)
        ciphertext = _keystream(self._k1, nonce, 0, plaintext[:PACKET_LENGTH_LEN]) + _keystream(
            self._k2, nonce, 1, plaintext[PACKET_LENGTH_LEN:]
        )
        return ciphertext, compute_poly1305(nonce, self._k2, ciphertext)


class ChaCha20Poly1305Cipher(Cipher):
    """The ``chacha20-poly1305`` cipher; it carries its own MAC."""

    def key_len(self) -> int:
        return 2 * KEY_LEN

    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> ChaChaOpeningKey:
        return ChaChaOpeningKey(*_split_key(key))

    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> ChaChaSealingKey:
        return ChaChaSealingKey(*_split_key(key))