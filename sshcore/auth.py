"""Authentication methods and the state of an authentication exchange."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union


class MethodSet(enum.Flag):
    """A set of SSH authentication methods."""

    NONE = 1
    PASSWORD = 2
    PUBLICKEY = 4
    HOSTBASED = 8
    KEYBOARD_INTERACTIVE = 16

    @classmethod
    def parse(cls, name: str) -> Optional["MethodSet"]:
        """Return the method with the wire name ``name``, or None if unknown."""
        return _BY_WIRE_NAME.get(name)

    def wire_name(self) -> str:
        """The wire name of a single method; empty for a combination."""
        return _WIRE_NAMES.get(self, "")

    def to_name_list(self) -> list[str]:
        """Wire names of every method in the set, in definition order."""
        return [member.wire_name() for member in type(self) if member in self]


_WIRE_NAMES = {
    MethodSet.NONE: "none",
    MethodSet.PASSWORD: "password",
    MethodSet.PUBLICKEY: "publickey",
    MethodSet.HOSTBASED: "hostbased",
    MethodSet.KEYBOARD_INTERACTIVE: "keyboard-interactive",
}
_BY_WIRE_NAME = {name: method for method, name in _WIRE_NAMES.items()}


@dataclass(frozen=True)
class NoneMethod:
    """Authenticate with no credentials."""


@dataclass(frozen=True)
class PasswordMethod:
    """Authenticate with a plaintext password."""

    password: str = field(repr=False)


@dataclass(frozen=True)
class PublicKeyMethod:
    """Authenticate by signing a challenge with a private key."""

    key: Any


@dataclass(frozen=True)
class OpenSshCertificateMethod:
    """Authenticate with a private key and its certificate."""

    key: Any
    cert: Any


@dataclass(frozen=True)
class FuturePublicKeyMethod:
    """Authenticate with a public key whose signature is produced elsewhere."""

    key: Any


@dataclass(frozen=True)
class KeyboardInteractiveMethod:
    """Authenticate by answering server prompts."""

    submethods: str


Method = Union[
    NoneMethod,
    PasswordMethod,
    PublicKeyMethod,
    OpenSshCertificateMethod,
    FuturePublicKeyMethod,
    KeyboardInteractiveMethod,
]


@dataclass
class PublicKeyRequest:
    """A public-key authentication attempt in progress."""

    key: bytes
    algo: bytes
    sent_pk_ok: bool = False


@dataclass
class KeyboardInteractiveRequest:
    """A keyboard-interactive authentication attempt in progress."""

    submethods: str


CurrentRequest = Union[PublicKeyRequest, KeyboardInteractiveRequest]


@dataclass
class AuthRequest:
    """The state of an authentication exchange."""

    methods: MethodSet
    partial_success: bool = False
    current: Optional[CurrentRequest] = None
    rejection_count: int = 0