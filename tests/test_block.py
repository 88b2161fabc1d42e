import asyncio
import hashlib
import hmac

import pytest

from sshcore.block import (
    AES,
    BlockOpeningKey,
    BlockSealingKey,
    CbcWrapper,
    CtrCipher,
    SshBlockCipher,
    TripleDES,
)
from sshcore.cipher import (
    MINIMUM_PACKET_LEN,
    Mac,
    MacAlgorithm,
    PacketAuthError,
    PacketBuffer,
    read_packet,
)


class _HmacSha256(Mac):
    def __init__(self, key: bytes, etm: bool) -> None:
        self._key = key
        self._etm = etm

    def is_etm(self) -> bool:
        return self._etm

    def mac_len(self) -> int:
        return 32

    def compute(self, sequence_number: int, payload: bytes) -> bytes:
        data = sequence_number.to_bytes(4, "big") + bytes(payload)
        return hmac.new(self._key, data, hashlib.sha256).digest()


class _HmacAlgorithm(MacAlgorithm):
    def __init__(self, etm: bool) -> None:
        self.etm = etm

    def make_mac(self, key: bytes) -> Mac:
        return _HmacSha256(key, self.etm)


CIPHERS = {
    "aes128-ctr": SshBlockCipher(CtrCipher, AES, 16),
    "aes256-ctr": SshBlockCipher(CtrCipher, AES, 32),
    "aes128-cbc": SshBlockCipher(CbcWrapper, AES, 16),
    "aes256-cbc": SshBlockCipher(CbcWrapper, AES, 32),
    "3des-cbc": SshBlockCipher(CbcWrapper, TripleDES, 24),
}


def _keys(cipher: SshBlockCipher, etm: bool):
    key = bytes(range(cipher.key_len()))
    nonce = bytes(range(100, 100 + cipher.nonce_len()))
    mac_key = b"k" * 32
    alg = _HmacAlgorithm(etm)
    return (
        cipher.make_sealing_key(key, nonce, mac_key, alg),
        cipher.make_opening_key(key, nonce, mac_key, alg),
    )


async def _transmit(sealing, opening, payloads):
    out = PacketBuffer()
    for payload in payloads:
        sealing.write(payload, out)
    reader = asyncio.StreamReader()
    reader.feed_data(bytes(out.buffer))
    reader.feed_eof()
    incoming = PacketBuffer()
    received = []
    for _ in payloads:
        n = await read_packet(reader, incoming, opening)
        assert n == len(incoming.buffer)
        received.append(bytes(incoming.buffer[5:]))
    return received, incoming


@pytest.mark.asyncio
@pytest.mark.parametrize("name", sorted(CIPHERS))
@pytest.mark.parametrize("etm", [False, True])
async def test_packets_round_trip(name, etm):
    sealing, opening = _keys(CIPHERS[name], etm)
    payloads = [b"", b"hello", b"x" * 100, bytes(range(256))]
    received, incoming = await _transmit(sealing, opening, payloads)
    assert received == payloads
    assert incoming.seqn == len(payloads)


@pytest.mark.asyncio
@pytest.mark.parametrize("etm", [False, True])
async def test_tampered_tag_is_rejected(etm):
    sealing, opening = _keys(CIPHERS["aes128-ctr"], etm)
    out = PacketBuffer()
    sealing.write(b"payload", out)
    out.buffer[-1] ^= 0x01
    reader = asyncio.StreamReader()
    reader.feed_data(bytes(out.buffer))
    reader.feed_eof()
    with pytest.raises(PacketAuthError):
        await read_packet(reader, PacketBuffer(), opening)


@pytest.mark.parametrize("name", sorted(CIPHERS))
def test_seal_then_open_directly(name):
    sealing, opening = _keys(CIPHERS[name], False)
    plaintext = bytes(range(48))
    ciphertext, tag = sealing.seal(3, plaintext)
    assert len(ciphertext) == len(plaintext)
    assert ciphertext != plaintext
    assert len(tag) == sealing.tag_len() == 32
    assert opening.open(3, ciphertext, tag) == plaintext[4:]


def test_wrong_sequence_number_fails_mac():
    sealing, opening = _keys(CIPHERS["aes256-ctr"], True)
    ciphertext, tag = sealing.seal(7, bytes(36))
    with pytest.raises(PacketAuthError):
        opening.open(8, ciphertext, tag)


def test_etm_keeps_length_in_clear():
    sealing, opening = _keys(CIPHERS["aes128-cbc"], True)
    plaintext = (28).to_bytes(4, "big") + bytes(28)
    ciphertext, _ = sealing.seal(0, plaintext)
    assert ciphertext[:4] == plaintext[:4]
    assert opening.decrypt_packet_length(0, ciphertext[:16]) == plaintext[:4]


def test_decrypt_packet_length_does_not_advance_cipher():
    sealing, opening = _keys(CIPHERS["aes128-ctr"], False)
    plaintext = (44).to_bytes(4, "big") + bytes(range(44))
    ciphertext, tag = sealing.seal(0, plaintext)
    assert opening.decrypt_packet_length(0, ciphertext[:16]) == plaintext[:4]
    assert opening.open(0, ciphertext, tag) == plaintext[4:]


def test_decrypt_packet_length_needs_a_full_block():
    _, opening = _keys(CIPHERS["aes128-ctr"], False)
    with pytest.raises(ValueError):
        opening.decrypt_packet_length(0, bytes(4))
    assert opening.packet_length_to_read_for_block_length() == 16


@pytest.mark.parametrize("etm", [False, True])
@pytest.mark.parametrize("size", [0, 1, 7, 11, 12, 15, 16, 31, 100, 1000])
def test_padding_aligns_packet(etm, size):
    sealing, _ = _keys(CIPHERS["aes128-ctr"], etm)
    payload = bytes(size)
    padding = sealing.padding_length(payload)
    covered = 1 + size + padding + (0 if etm else 4)
    assert padding >= 4
    assert covered % 16 == 0
    assert 4 + 1 + size + padding >= MINIMUM_PACKET_LEN


def test_fill_padding_length():
    sealing, _ = _keys(CIPHERS["aes128-ctr"], False)
    assert len(sealing.fill_padding(13)) == 13


def test_ctr_copy_has_same_state():
    cipher = CtrCipher(bytes(16), bytes(16))
    cipher.encrypt_data(b"abcde")
    twin = cipher.copy()
    data = bytes(range(40))
    assert twin.encrypt_data(data) == cipher.encrypt_data(data)


def test_ctr_is_a_stream():
    data = bytes(range(77))
    whole = CtrCipher(b"k" * 16, b"n" * 16).encrypt_data(data)
    pieces = CtrCipher(b"k" * 16, b"n" * 16)
    split = pieces.encrypt_data(data[:5]) + pieces.encrypt_data(data[5:33]) + pieces.encrypt_data(
        data[33:]
    )
    assert split == whole
    assert CtrCipher(b"k" * 16, b"n" * 16).decrypt_data(whole) == data


def test_ctr_counter_wraps():
    data = bytes(48)
    cipher = CtrCipher(bytes(16), b"\xff" * 16)
    out = cipher.encrypt_data(data)
    assert len(out) == 48
    assert cipher.copy().encrypt_data(data) == cipher.encrypt_data(data)


@pytest.mark.parametrize("algorithm,key_len", [(AES, 16), (TripleDES, 24)])
def test_cbc_chains_across_calls(algorithm, key_len):
    block = algorithm.block_size // 8
    data = bytes(range(block * 4))
    key = bytes(range(key_len))
    iv = b"i" * block
    whole = CbcWrapper(key, iv, algorithm).encrypt_data(data)
    chained = CbcWrapper(key, iv, algorithm)
    split = chained.encrypt_data(data[: block * 2]) + chained.encrypt_data(data[block * 2 :])
    assert split == whole
    reader = CbcWrapper(key, iv, algorithm)
    assert reader.decrypt_data(whole[:block]) + reader.decrypt_data(whole[block:]) == data


def test_cbc_leaves_partial_block():
    cipher = CbcWrapper(bytes(16), bytes(16))
    data = bytes(range(19))
    out = cipher.encrypt_data(data)
    assert len(out) == 19
    assert out[16:] == data[16:]
    assert out[:16] != data[:16]


def test_cbc_copy_is_independent():
    cipher = CbcWrapper(bytes(16), bytes(16))
    cipher.encrypt_data(bytes(16))
    twin = cipher.copy()
    assert twin.encrypt_data(bytes(32)) == cipher.encrypt_data(bytes(32))


def test_block_cipher_sizes():
    assert CIPHERS["aes128-ctr"].key_len() == 16
    assert CIPHERS["aes128-ctr"].nonce_len() == 16
    assert CIPHERS["3des-cbc"].key_len() == 24
    assert CIPHERS["3des-cbc"].nonce_len() == 8
    assert CIPHERS["aes256-cbc"].needs_mac() is True


def test_wrong_key_length_is_rejected():
    cipher = CIPHERS["aes128-ctr"]
    with pytest.raises(ValueError):
        cipher.make_sealing_key(bytes(15), bytes(16), b"", _HmacAlgorithm(False))
    with pytest.raises(ValueError):
        cipher.make_opening_key(bytes(16), bytes(8), b"", _HmacAlgorithm(False))


def test_mac_is_required():
    with pytest.raises(ValueError):
        CIPHERS["aes128-ctr"].make_sealing_key(bytes(16), bytes(16), b"", None)


def test_keys_have_expected_types():
    sealing, opening = _keys(CIPHERS["aes128-ctr"], False)
    assert isinstance(sealing, BlockSealingKey)
    assert isinstance(opening, BlockOpeningKey)
    assert opening.tag_len() == 32