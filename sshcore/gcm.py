"""The AES-256-GCM transport cipher."""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

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
NONCE_LEN = 12
TAG_LEN = 16
_BLOCK_SIZE = 16


def inc_nonce(nonce: bytes) -> bytes:
    """Return ``nonce`` incremented by one as a big-endian counter, wrapping to zero."""
    width = len(nonce)
    value = (int.from_bytes(bytes(nonce), "big") + 1) % (1 << (8 * width))
    return value.to_bytes(width, "big")


def _check(what: str, value: bytes, expected: int) -> bytes:
    value = bytes(value)
    if len(value) != expected:
        raise ValueError(f"{what} must be {expected} bytes, got {len(value)}")
    return value


class GcmOpeningKey(OpeningKey):
    """Receiving key; the packet length travels in clear as associated data."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        self._aead = AESGCM(_check("key", key, KEY_LEN))
        self.nonce = _check("nonce", nonce, NONCE_LEN)

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        return _check("packet length", encrypted_packet_length, PACKET_LENGTH_LEN)

    def tag_len(self) -> int:
        return TAG_LEN

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        ciphertext = bytes(ciphertext)
        length_bytes = ciphertext[:PACKET_LENGTH_LEN]
        body = ciphertext[PACKET_LENGTH_LEN:]
        try:
            plaintext = self._aead.decrypt(self.nonce, body + bytes(tag), length_bytes)
        except InvalidTag:
            raise DecryptionError() from None
        self.nonce = inc_nonce(self.nonce)
        return plaintext


class GcmSealingKey(SealingKey):
    """Sending key; the packet length travels in clear as associated data."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        self._aead = AESGCM(_check("key", key, KEY_LEN))
        self.nonce = _check("nonce", nonce, NONCE_LEN)

    def padding_length(self, payload: bytes) -> int:
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN
        else:
            padding = _BLOCK_SIZE - ((PADDING_LENGTH_LEN + len(payload)) % _BLOCK_SIZE)
        return padding + _BLOCK_SIZE if padding < PACKET_LENGTH_LEN else padding

    def fill_padding(self, length: int) -> bytes:
        return os.urandom(length)

    def tag_len(self) -> int:
        return TAG_LEN

    def seal(self, seqn: int, plaintext: bytes) -> tuple[bytes, bytes]:
        plaintext = bytes(plaintext)
        length_bytes = plaintext[:PACKET_LENGTH_LEN]
        sealed = self._aead.encrypt(self.nonce, plaintext[PACKET_LENGTH_LEN:], length_bytes)
        self.nonce = inc_nonce(self.nonce)
        return length_bytes + sealed[:-TAG_LEN], sealed[-TAG_LEN:]


class GcmCipher(Cipher):
    """The ``aes256-gcm`` cipher; it carries its own authentication."""

    def key_len(self) -> int:
        return KEY_LEN

    def nonce_len(self) -> int:
        return NONCE_LEN

    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> GcmOpeningKey:
        return GcmOpeningKey(key, nonce)

    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> GcmSealingKey:
        return GcmSealingKey(key, nonce)