"""The registry of transport ciphers by wire name."""

from __future__ import annotations

from cryptography.hazmat.primitives.ciphers.algorithms import AES

try:
    from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
except ImportError:  # older releases keep it among the primitives
    from cryptography.hazmat.primitives.ciphers.algorithms import (  # type: ignore[no-redef]
        TripleDES,
    )

from .block import CbcWrapper, CtrCipher, SshBlockCipher
from .chacha20poly1305 import ChaCha20Poly1305Cipher
from .cipher import Cipher, CipherName
from .clear import Clear
from .gcm import GcmCipher

_OPENSSH_SUFFIX = "@openssh.com"

CLEAR = CipherName("clear")
TRIPLE_DES_CBC = CipherName("3des-cbc")
AES_128_CTR = CipherName("aes128-ctr")
AES_192_CTR = CipherName("aes192-ctr")
AES_128_CBC = CipherName("aes128-cbc")
AES_192_CBC = CipherName("aes192-cbc")
AES_256_CBC = CipherName("aes256-cbc")
AES_256_CTR = CipherName("aes256-ctr")
AES_256_GCM = CipherName("aes256-gcm" + _OPENSSH_SUFFIX)
CHACHA20_POLY1305 = CipherName("chacha20-poly1305" + _OPENSSH_SUFFIX)
NONE = CipherName("none")

ALL_CIPHERS: tuple[CipherName, ...] = (
    CLEAR,
    NONE,
    TRIPLE_DES_CBC,
    AES_128_CTR,
    AES_192_CTR,
    AES_256_CTR,
    AES_256_GCM,
    AES_128_CBC,
    AES_192_CBC,
    AES_256_CBC,
    CHACHA20_POLY1305,
)

_CLEAR = Clear()

CIPHERS: dict[CipherName, Cipher] = {
    CLEAR: _CLEAR,
    NONE: _CLEAR,
    TRIPLE_DES_CBC: SshBlockCipher(CbcWrapper, TripleDES, 24),
    AES_128_CTR: SshBlockCipher(CtrCipher, AES, 16),
    AES_192_CTR: SshBlockCipher(CtrCipher, AES, 24),
    AES_256_CTR: SshBlockCipher(CtrCipher, AES, 32),
    AES_256_GCM: GcmCipher(),
    AES_128_CBC: SshBlockCipher(CbcWrapper, AES, 16),
    AES_192_CBC: SshBlockCipher(CbcWrapper, AES, 24),
    AES_256_CBC: SshBlockCipher(CbcWrapper, AES, 32),
    CHACHA20_POLY1305: ChaCha20Poly1305Cipher(),
}


def get_cipher(name: CipherName | str) -> Cipher:
    """Return the cipher registered under ``name``; raise KeyError if there is none."""
    key = name if isinstance(name, CipherName) else CipherName(name)
    try:
        return CIPHERS[key]
    except KeyError:
        raise KeyError(f"unknown cipher: {key}") from None


def cipher_name(text: str) -> CipherName:
    """Return the known cipher name spelled ``text``; raise ValueError if unknown."""
    key = CipherName(text)
    if key not in CIPHERS:
        raise ValueError(f"unknown cipher: {text}")
    return key