"""Packet sealing and opening primitives shared by every transport cipher."""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol

log = logging.getLogger(__name__)

PACKET_LENGTH_LEN = 4
PADDING_LENGTH_LEN = 1
MINIMUM_PACKET_LEN = 16
MAXIMUM_PACKET_LEN = 256 * 1024

_SEQN_MASK = 0xFFFFFFFF


class SshError(Exception):
    """Base class for transport errors."""


class PacketSizeError(SshError):
    """A packet announced a length above the protocol maximum."""

    def __init__(self, length: int) -> None:
        super().__init__(f"packet too large: {length} bytes")
        self.length = length


class PacketAuthError(SshError):
    """A packet's MAC did not verify."""

    def __init__(self, message: str = "packet authentication failed") -> None:
        super().__init__(message)


class DecryptionError(SshError):
    """An AEAD cipher rejected a packet."""

    def __init__(self, message: str = "decryption failed") -> None:
        super().__init__(message)


class IndexOutOfBoundsError(SshError):
    """A packet's declared sizes do not fit its contents."""

    def __init__(self, message: str = "index out of bounds") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class CipherName:
    """The wire name of a cipher."""

    name: str

    def __str__(self) -> str:
        return self.name


class Mac(ABC):
    """A keyed message authentication code bound to a sequence number."""

    def is_etm(self) -> bool:
        """Whether the MAC is computed over the ciphertext (encrypt-then-MAC)."""
        return False

    @abstractmethod
    def mac_len(self) -> int:
        """Length of the tag in bytes."""

    @abstractmethod
    def compute(self, sequence_number: int, payload: bytes) -> bytes:
        """Return the tag for ``payload`` at ``sequence_number``."""

    def verify(self, sequence_number: int, payload: bytes, tag: bytes) -> bool:
        """Check ``tag`` against ``payload`` in constant time."""
        return hmac.compare_digest(self.compute(sequence_number, payload), bytes(tag))


class MacAlgorithm(ABC):
    """Factory for keyed MAC instances."""

    @abstractmethod
    def make_mac(self, key: bytes) -> Mac:
        """Return a MAC keyed with ``key``."""


class OpeningKey(ABC):
    """The receiving half of a cipher: decrypts and authenticates packets."""

    def packet_length_to_read_for_block_length(self) -> int:
        """Number of bytes to read before the packet length can be decrypted."""
        return 4

    @abstractmethod
    def decrypt_packet_length(self, seqn: int, encrypted_packet_length: bytes) -> bytes:
        """Return the four clear bytes of the packet length."""

    @abstractmethod
    def tag_len(self) -> int:
        """Length of the authentication tag in bytes."""

    @abstractmethod
    def open(self, seqn: int, ciphertext: bytes, tag: bytes) -> bytes:
        """Authenticate and decrypt a whole packet.

        ``ciphertext`` includes the four length bytes; the result is the
        clear text following them (padding length, payload and padding).
        """


class SealingKey(ABC):
    """The sending half of a cipher: pads, encrypts and authenticates packets."""

    @abstractmethod
    def padding_length(self, payload: bytes) -> int:
        """Number of padding bytes to append to ``payload``."""

    @abstractmethod
    def fill_padding(self, length: int) -> bytes:
        """Return ``length`` bytes of padding."""

    @abstractmethod
    def tag_len(self) -> int:
        """Length of the authentication tag in bytes."""

    @abstractmethod
    def seal(self, seqn: int, plaintext: bytes) -> tuple[bytes, bytes]:
        """Encrypt a whole packet and return ``(ciphertext, tag)``."""

    def write(self, payload: bytes, buffer: PacketBuffer) -> None:
        """Frame ``payload`` as a packet and append it, sealed, to ``buffer``."""
        log.debug("writing, seqn = %d", buffer.seqn)
        padding_length = self.padding_length(payload)
        packet_length = PADDING_LENGTH_LEN + len(payload) + padding_length
        if packet_length > _SEQN_MASK:
            raise PacketSizeError(packet_length)
        if padding_length > 0xFF:
            raise ValueError(f"padding length {padding_length} does not fit in a byte")

        plaintext = b"".join(
            (
                packet_length.to_bytes(PACKET_LENGTH_LEN, "big"),
                bytes((padding_length,)),
                bytes(payload),
                self.fill_padding(padding_length),
            )
        )
        ciphertext, tag = self.seal(buffer.seqn, plaintext)
        buffer.buffer += ciphertext
        buffer.buffer += tag
        buffer.total_bytes += len(payload)
        buffer.seqn = (buffer.seqn + 1) & _SEQN_MASK


class Cipher(ABC):
    """A cipher algorithm able to produce opening and sealing keys."""

    def needs_mac(self) -> bool:
        """Whether a separate MAC algorithm must be negotiated."""
        return False

    @abstractmethod
    def key_len(self) -> int:
        """Length of the key material in bytes."""

    def nonce_len(self) -> int:
        """Length of the nonce or IV in bytes."""
        return 0

    @abstractmethod
    def make_opening_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> OpeningKey:
        """Build the receiving key."""

    @abstractmethod
    def make_sealing_key(
        self, key: bytes, nonce: bytes, mac_key: bytes, mac: MacAlgorithm | None
    ) -> SealingKey:
        """Build the sending key."""


@dataclass
class PacketBuffer:
    """Packet bytes together with the stream state of one direction."""

    buffer: bytearray = field(default_factory=bytearray)
    pending_length: int = 0
    total_bytes: int = 0
    seqn: int = 0


@dataclass
class CipherPair:
    """The keys for both directions of a connection."""

    local_to_remote: SealingKey = field(repr=False)
    remote_to_local: OpeningKey = field(repr=False)


class _ExactReader(Protocol):
    async def readexactly(self, n: int) -> bytes: ...


async def read_packet(stream: _ExactReader, buffer: PacketBuffer, cipher: OpeningKey) -> int:
    """Read, authenticate and decrypt one packet from ``stream``.

    On return ``buffer.buffer`` holds the four length bytes followed by the
    padding-length byte and the payload, with the padding removed. The
    returned value is the length of that content.
    """
    head_len = cipher.packet_length_to_read_for_block_length()
    if buffer.pending_length == 0:
        head = await stream.readexactly(head_len)
        buffer.buffer = bytearray(head)
        length = int.from_bytes(cipher.decrypt_packet_length(buffer.seqn, head), "big")
        if length > MAXIMUM_PACKET_LEN:
            raise PacketSizeError(length)
        buffer.pending_length = length + cipher.tag_len()
        log.debug("reading, seqn = %d, clear len = %d", buffer.seqn, buffer.pending_length)

    total = buffer.pending_length + PACKET_LENGTH_LEN
    if total < head_len:
        raise IndexOutOfBoundsError()
    rest = await stream.readexactly(total - head_len)
    del buffer.buffer[head_len:]
    buffer.buffer += rest

    ciphertext_len = len(buffer.buffer) - cipher.tag_len()
    plaintext = cipher.open(
        buffer.seqn,
        bytes(buffer.buffer[:ciphertext_len]),
        bytes(buffer.buffer[ciphertext_len:]),
    )
    padding_length = plaintext[0] if plaintext else 0
    plaintext_end = len(plaintext) - padding_length
    if plaintext_end < 0:
        raise IndexOutOfBoundsError()

    buffer.seqn = (buffer.seqn + 1) & _SEQN_MASK
    buffer.pending_length = 0
    buffer.buffer = bytearray(buffer.buffer[:PACKET_LENGTH_LEN]) + plaintext[:plaintext_end]
    return plaintext_end + PACKET_LENGTH_LEN