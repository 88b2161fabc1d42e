"""Block and counter-mode ciphers wrapped for SSH packet encryption."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Any

from cryptography.hazmat.primitives.ciphers import Cipher as _Primitive
from cryptography.hazmat.primitives.ciphers import modes
from cryptography.hazmat.primitives.ciphers.algorithms import AES

try:
    from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
except ImportError:  # older releases keep it among the primitives
    from cryptography.hazmat.primitives.ciphers.algorithms import (  # type: ignore[no-redef]
        TripleDES,
    )

from .cipher import (
    MINIMUM_PACKET_LEN,
    PACKET_LENGTH_LEN,
    PADDING_LENGTH_LEN,
    Cipher,
    Mac,
    MacAlgorithm,
    OpeningKey,
    PacketAuthError,
    SealingKey,
)

_FIRST_BLOCK_LEN = 16
_PADDING_BLOCK_SIZE = 16


def _block_bytes(algorithm: Any) -> int:
    return algorithm.block_size // 8


def _check_length(what: str, value: bytes, expected: int) -> None:
    if len(value) != expected:
        raise ValueError(f"{what} must be {expected} bytes, got {len(value)}")


class BlockStreamCipher(ABC):
    """A stateful cipher that encrypts and decrypts data as a stream."""

    @abstractmethod
    def encrypt_data(self, data: bytes) -> bytes:
        """Encrypt ``data``, advancing the cipher state."""

    @abstractmethod
    def decrypt_data(self, data: bytes) -> bytes:
        """Decrypt ``data``, advancing the cipher state."""

    @abstractmethod
    def copy(self) -> BlockStreamCipher:
        """Return an independent cipher in the same state."""


class CtrCipher(BlockStreamCipher):
    """A block cipher in big-endian counter mode."""

    def __init__(self, key: bytes, iv: bytes, algorithm: Any = AES, offset: int = 0) -> None:
        self._key = bytes(key)
        self._iv = bytes(iv)
        self._algorithm = algorithm
        self._block = _block_bytes(algorithm)
        _check_length("CTR counter", self._iv, self._block)
        self._offset = offset
        self._context = self._start(offset)

    def _start(self, offset: int) -> Any:
        bits = self._block * 8
        counter = (int.from_bytes(self._iv, "big") + offset // self._block) % (1 << bits)
        context = _Primitive(
            self._algorithm(self._key), modes.CTR(counter.to_bytes(self._block, "big"))
        ).encryptor()
        context.update(bytes(offset % self._block))
        return context

    def encrypt_data(self, data: bytes) -> bytes:
        out = self._context.update(bytes(data))
        self._offset += len(data)
        return out

    def decrypt_data(self, data: bytes) -> bytes:
        return self.encrypt_data(data)

    def copy(self) -> CtrCipher:
        return CtrCipher(self._key, self._iv, self._algorithm, self._offset)


class CbcWrapper(BlockStreamCipher):
    """A block cipher in CBC mode, chaining across calls.

    Only whole blocks are processed; a trailing partial block is returned
    unchanged.
    """

    def __init__(self, key: bytes, iv: bytes, algorithm: Any = AES) -> None:
        self._key = bytes(key)
        self._algorithm = algorithm
        self._block = _block_bytes(algorithm)
        _check_length("CBC IV", bytes(iv), self._block)
        self._encrypt_iv = bytes(iv)
        self._decrypt_iv = bytes(iv)

    def _split(self, data: bytes) -> tuple[bytes, bytes]:
        whole = len(data) - len(data) % self._block
        return bytes(data[:whole]), bytes(data[whole:])

    def encrypt_data(self, data: bytes) -> bytes:
        blocks, rest = self._split(data)
        if not blocks:
            return blocks + rest
        context = _Primitive(
            self._algorithm(self._key), modes.CBC(self._encrypt_iv)
        ).encryptor()
        out = context.update(blocks)
        self._encrypt_iv = out[-self._block :]
        return out + rest

    def decrypt_data(self, data: bytes) -> bytes:
        blocks, rest = self._split(data)
        if not blocks:
            return blocks + rest
        context = _Primitive(
            self._algorithm(self._key), modes.CBC(self._decrypt_iv)
        ).decryptor()
        out = context.update(blocks)
        self._decrypt_iv = blocks[-self._block :]
        return out + rest

    def copy(self) -> CbcWrapper:
        twin = CbcWrapper(self._key, self._encrypt_iv, self._algorithm)
        twin._decrypt_iv = self._decrypt_iv
        return twin


class BlockOpeningKey(OpeningKey):
    """Receiving key for a block cipher combined with a separate MAC."""

    def __init__(self, cipher: BlockStreamCipher, mac: Mac) -> None:
        self.cipher = cipher
        self.mac = mac

    def packet_length_to_read_for_block_length(self) -> int:
        return _FIRST_BLOCK_LEN

    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        if len(encrypted_packet_length) < _FIRST_BLOCK_LEN:
            raise ValueError(
                f"need {_FIRST_BLOCK_LEN} bytes to decrypt the packet length, "
                f"got {len(encrypted_packet_length)}"
            )
        if self.mac.is_etm():
            return bytes(encrypted_packet_length[:PACKET_LENGTH_LEN])
        # Peek at the first block without advancing the real cipher.
        first = self.cipher.copy().decrypt_data(bytes(encrypted_packet_length[:_FIRST_BLOCK_LEN]))
        return first[:PACKET_LENGTH_LEN]

    def tag_len(self) -> int:
        return self.mac.mac_len()

    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        ciphertext = bytes(ciphertext)
        if self.mac.is_etm():
            if not self.mac.verify(seqn, ciphertext, tag):
                raise PacketAuthError()
            return self.cipher.decrypt_data(ciphertext[PACKET_LENGTH_LEN:])
        plaintext = self.cipher.decrypt_data(ciphertext)
        if not self.mac.verify(seqn, plaintext, tag):
            raise PacketAuthError()
        return plaintext[PACKET_LENGTH_LEN:]


class BlockSealingKey(SealingKey):
    """Sending key for a block cipher combined with a separate MAC."""

    def __init__(self, cipher: BlockStreamCipher, mac: Mac) -> None:
        self.cipher = cipher
        self.mac = mac

    def padding_length(self, payload: bytes) -> int:
        pll = 0 if self.mac.is_etm() else PACKET_LENGTH_LEN
        extra_len = PACKET_LENGTH_LEN + PADDING_LENGTH_LEN + self.mac.mac_len()
        if len(payload) + extra_len <= MINIMUM_PACKET_LEN:
            padding = MINIMUM_PACKET_LEN - len(payload) - PADDING_LENGTH_LEN - pll
        else:
            padding = _PADDING_BLOCK_SIZE - (
                (pll + PADDING_LENGTH_LEN + len(payload)) % _PADDING_BLOCK_SIZE
            )
        return padding + _PADDING_BLOCK_SIZE if padding < PACKET_LENGTH_LEN else padding

    def fill_padding(self, length: int) -> bytes:
        return os.urandom(length)

    def tag_len(self) -> int:
        return self.mac.mac_len()

    def seal(self, seqn: int, plaintext: bytes) -> tuple[bytes, bytes]:
        plaintext = bytes(plaintext)
        if self.mac.is_etm():
            ciphertext = plaintext[:PACKET_LENGTH_LEN] + self.cipher.encrypt_data(
                plaintext[PACKET_LENGTH_LEN:]
            )
            return ciphertext, self.mac.compute(seqn, ciphertext)
        tag = self.mac.compute(seqn, plaintext)
        return self.cipher.encrypt_data(plaintext), tag


class SshBlockCipher(Cipher):
    """A cipher built from a stream mode and an underlying block algorithm."""

    def __init__(self, mode: type[BlockStreamCipher], algorithm: Any, key_size: int) -> None:
        self.mode = mode
        self.algorithm = algorithm
        self.key_size = key_size

    def __repr__(self) -> str:
        return (
            f"SshBlockCipher({self.mode.__name__}, {self.algorithm.__name__}, {self.key_size})"
        )

    def key_len(self) -> int:
        return self.key_size

    def nonce_len(self) -> int:
        return _block_bytes(self.algorithm)

    def needs_mac(self) -> bool:
        return True

    def _build(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> tuple[BlockStreamCipher, Mac]:
        _check_length("key", bytes(key), self.key_len())
        _check_length("nonce", bytes(nonce), self.nonce_len())
        if mac is None:
            raise ValueError("block ciphers need a MAC algorithm")
        cipher = self.mode(bytes(key), bytes(nonce), self.algorithm)  # type: ignore[call-arg]
        return cipher, mac.make_mac(bytes(mac_key))

    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> BlockOpeningKey:
        return BlockOpeningKey(*self._build(key, nonce, mac_key, mac))

    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> BlockSealingKey:
        return BlockSealingKey(*self._build(key, nonce, mac_key, mac))