# sshcore

Building blocks for the SSH transport and connection layers:

- packet ciphers that frame, pad, encrypt and authenticate SSH binary
  packets: `clear`/`none`, AES-128/192/256 in CTR and CBC mode,
  3DES-CBC, AES-256-GCM and ChaCha20-Poly1305;
- authentication method sets and the state of an authentication exchange;
- asyncio channel handles with flow-controlled readers and writers.

## Installation

```
pip install sshcore
```

To run the test suite:

```
pip install "sshcore[test]"
pytest
```

## Ciphers

`sshcore.ciphers` maps wire names to cipher objects. `get_cipher(name)`
accepts a `CipherName` or a string and raises `KeyError` for an unknown
name; `cipher_name(text)` returns the matching `CipherName` or raises
`ValueError`. The names are also available as constants (`CLEAR`, `NONE`,
`AES_128_CTR`, `AES_256_CBC`, `TRIPLE_DES_CBC`, `AES_256_GCM`,
`CHACHA20_POLY1305`, ...) and listed in `ALL_CIPHERS`.

Each cipher reports `key_len()`, `nonce_len()` and `needs_mac()`, and
builds a `SealingKey` for sending and an `OpeningKey` for receiving.
`SealingKey.write(payload, buffer)` appends one complete packet (length,
padding length, payload, padding and tag) to a `PacketBuffer` and advances
its sequence number. `read_packet(stream, buffer, opening_key)` reads one
packet from any object with an async `readexactly(n)` (such as an
`asyncio.StreamReader`), checks its tag, and leaves the four length bytes,
the padding-length byte and the payload in `buffer.buffer`; it returns the
length of that content.

```python
import asyncio
import os

from sshcore.cipher import PacketBuffer, read_packet
from sshcore.ciphers import CHACHA20_POLY1305, get_cipher

cipher = get_cipher(CHACHA20_POLY1305)
key = os.urandom(cipher.key_len())
sealing = cipher.make_sealing_key(key, b"", b"", None)
opening = cipher.make_opening_key(key, b"", b"", None)

outgoing = PacketBuffer()
sealing.write(b"hello", outgoing)


async def main() -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(bytes(outgoing.buffer))
    reader.feed_eof()
    incoming = PacketBuffer()
    end = await read_packet(reader, incoming, opening)
    print(bytes(incoming.buffer[5:end]))  # b'hello'


asyncio.run(main())
```

A failed tag check raises `PacketAuthError` (block ciphers) or
`DecryptionError` (GCM and ChaCha20-Poly1305); a packet announcing more
than 256 KiB raises `PacketSizeError`; inconsistent padding raises
`IndexOutOfBoundsError`. All of them derive from `SshError`.

The CTR, CBC and 3DES ciphers need a separate MAC: pass a
`MacAlgorithm` whose `make_mac(key)` returns a `Mac` implementing
`mac_len()` and `compute(sequence_number, payload)` (and `is_etm()` for
encrypt-then-MAC). The GCM and ChaCha20-Poly1305 ciphers ignore the MAC
arguments.

## Authentication methods

```python
from sshcore.auth import MethodSet

methods = MethodSet.PASSWORD | MethodSet.PUBLICKEY
methods.to_name_list()                  # ['password', 'publickey']
MethodSet.parse("keyboard-interactive")  # MethodSet.KEYBOARD_INTERACTIVE
MethodSet.parse("unknown")               # None
MethodSet.PUBLICKEY.wire_name()          # 'publickey'
```

`sshcore.auth` also holds the method descriptions (`NoneMethod`,
`PasswordMethod`, `PublicKeyMethod`, `OpenSshCertificateMethod`,
`FuturePublicKeyMethod`, `KeyboardInteractiveMethod`) and the request
state (`AuthRequest`, `PublicKeyRequest`, `KeyboardInteractiveRequest`).

## Channels

`Channel.create(channel_id, sender, max_packet_size, window_size)` returns
a `Channel` and the `ChannelRef` through which a session delivers messages
to it. The channel puts `(channel_id, message)` pairs on `sender`, for
example an `asyncio.Queue`; the messages are the dataclasses in
`sshcore.messages` (`Exec`, `RequestPty`, `Data`, `Eof`, `ExitStatus`, ...).

```python
import asyncio

from sshcore.channel import Channel
from sshcore.messages import ExitStatus


async def main() -> None:
    outbox: asyncio.Queue = asyncio.Queue()
    channel, ref = Channel.create(0, outbox, 32768, 2 * 1024 * 1024)

    await channel.exec(True, "uptime")
    print(await outbox.get())      # (0, Exec(want_reply=True, command=b'uptime'))

    ref.send(ExitStatus(0))
    print(await channel.wait())    # ExitStatus(exit_status=0)

    ref.close()
    print(await channel.wait())    # None


asyncio.run(main())
```

`channel.data(...)` and `channel.extended_data(ext, ...)` send bytes, or
everything read from an object with an async `read(n)`, split into packets
no larger than the maximum packet size and the remaining window. The
window is a shared `WindowSize`; writers wait while it is zero, and
`ref.window_size.set(n)` enlarges it. `make_reader()`,
`make_reader_ext(ext)`, `make_writer()` and `make_writer_ext(ext)` give
`ChannelRx` and `ChannelTx` objects, and `into_stream()` gives a
`ChannelStream` with `read`, `write`, `flush` and `shutdown`.

## What this package does not do

It provides no network connection, key exchange, host-key handling or
client or server session: the caller derives keys, supplies MAC
implementations for the block ciphers, and moves packets and channel
messages between sockets and these objects.