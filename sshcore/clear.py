"""The unencrypted cipher used before key exchange completes."""

from __future__ import annotations

from .cipher import (
    PACKET_LENGTH_LEN,
    Cipher,
    MacAlgorithm,
    OpeningKey,
    SealingKey,
)

_BLOCK_SIZE = 8


class ClearKey(OpeningKey, SealingKey):
    """Opening and sealing key that leaves packets untouched."""

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        if len(encrypted_packet_length) != PACKET_LENGTH_LEN:
            raise ValueError(
                f"expected {PACKET_LENGTH_LEN} length bytes, got {len(encrypted_packet_length)}"
            )
        return bytes(encrypted_packet_length)

    def tag_len(self) -> int:
        return 0

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        return bytes(ciphertext[PACKET_LENGTH_LEN:])

    def padding_length(self, payload: bytes) -> int:
        # Clear packets, length included, must be a multiple of 8 bytes.
        padding = _BLOCK_SIZE - ((5 + len(payload)) % _BLOCK_SIZE)
        return padding + _BLOCK_SIZE if padding < 4 else padding

    def fill_padding(self, length: int) -> bytes:
        # Nothing is gained by random padding on a clear stream.
        return bytes(length)

    def seal(self, seqn: int, plaintext: bytes) -> tuple[bytes, bytes]:
        return bytes(plaintext), b""


class Clear(Cipher):
    """The ``clear``/``none`` cipher."""

    def key_len(self) -> int:
        return 0

    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> ClearKey:
        return ClearKey()

    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> ClearKey:
        return ClearKey()