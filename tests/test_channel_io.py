import asyncio

import pytest

from sshcore.channel import Channel
from sshcore.channel_io import ChannelRx, ChannelStream, ChannelTx, WindowSize
from sshcore.messages import Close, Data, Eof, ExitStatus, ExtendedData


class _BrokenSender:
    async def put(self, item):
        raise RuntimeError("gone")

    def put_nowait(self, item):
        raise RuntimeError("gone")


def _drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_window_size_get_set():
    window = WindowSize(10)
    assert window.get() == 10
    window.set(42)
    assert window.get() == 42


def test_window_size_rejects_out_of_range():
    with pytest.raises(ValueError):
        WindowSize(-1)
    window = WindowSize()
    with pytest.raises(ValueError):
        window.set(1 << 32)


@pytest.mark.asyncio
async def test_write_limited_by_max_packet_size():
    queue = asyncio.Queue()
    window = WindowSize(100)
    tx = ChannelTx(queue, 7, window, 3)
    assert await tx.write(b"abcdefgh") == 3
    assert _drain(queue) == [(7, Data(b"abc"))]
    assert window.get() == 97


@pytest.mark.asyncio
async def test_write_limited_by_window():
    queue = asyncio.Queue()
    window = WindowSize(2)
    tx = ChannelTx(queue, 1, window, 100)
    assert await tx.write(b"hello") == 2
    assert _drain(queue) == [(1, Data(b"he"))]
    assert window.get() == 0


@pytest.mark.asyncio
async def test_write_waits_for_window():
    queue = asyncio.Queue()
    window = WindowSize(0)
    tx = ChannelTx(queue, 1, window, 100)
    task = asyncio.create_task(tx.write(b"abc"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert not task.done()
    window.set(2)
    assert await task == 2
    assert _drain(queue) == [(1, Data(b"ab"))]


@pytest.mark.asyncio
async def test_extended_writer_sends_extended_data():
    queue = asyncio.Queue()
    tx = ChannelTx(queue, 4, WindowSize(50), 50, ext=1)
    await tx.write_all(b"err")
    assert _drain(queue) == [(4, ExtendedData(b"err", 1))]


@pytest.mark.asyncio
async def test_write_all_splits_into_packets():
    queue = asyncio.Queue()
    tx = ChannelTx(queue, 2, WindowSize(100), 4)
    await tx.write_all(b"0123456789")
    chunks = [msg.data for _, msg in _drain(queue)]
    assert b"".join(chunks) == b"0123456789"
    assert all(len(chunk) <= 4 for chunk in chunks)


@pytest.mark.asyncio
async def test_empty_write_sends_nothing():
    queue = asyncio.Queue()
    tx = ChannelTx(queue, 2, WindowSize(100), 4)
    assert await tx.write(b"") == 0
    assert queue.empty()


@pytest.mark.asyncio
async def test_shutdown_sends_eof():
    queue = asyncio.Queue()
    tx = ChannelTx(queue, 9, WindowSize(10), 10)
    await tx.shutdown()
    assert _drain(queue) == [(9, Eof())]


@pytest.mark.asyncio
async def test_write_to_closed_sender_is_broken_pipe():
    tx = ChannelTx(_BrokenSender(), 1, WindowSize(10), 10)
    with pytest.raises(BrokenPipeError):
        await tx.write(b"x")
    with pytest.raises(BrokenPipeError):
        await tx.shutdown()


@pytest.mark.asyncio
async def test_rx_partial_reads_keep_remainder():
    channel, ref = Channel.create(3, asyncio.Queue(), 32, 32)
    ref.send(Data(b"abcdef"))
    rx = ChannelRx(channel)
    assert await rx.read(4) == b"abcd"
    assert await rx.read(4) == b"ef"


@pytest.mark.asyncio
async def test_rx_skips_other_messages():
    channel, ref = Channel.create(3, asyncio.Queue(), 32, 32)
    ref.send(ExtendedData(b"err", 1))
    ref.send(ExitStatus(0))
    ref.send(Data(b"out"))
    rx = ChannelRx(channel)
    assert await rx.read() == b"out"


@pytest.mark.asyncio
async def test_rx_extended_reader_filters_by_ext():
    channel, ref = Channel.create(3, asyncio.Queue(), 32, 32)
    ref.send(Data(b"out"))
    ref.send(ExtendedData(b"two", 2))
    ref.send(ExtendedData(b"one", 1))
    rx = ChannelRx(channel, ext=1)
    assert await rx.read() == b"one"


@pytest.mark.asyncio
async def test_rx_eof_ends_reading():
    channel, ref = Channel.create(3, asyncio.Queue(), 32, 32)
    ref.send(Eof())
    rx = ChannelRx(channel)
    assert await rx.read() == b""
    with pytest.raises(BrokenPipeError):
        ref.send(Data(b"late"))


@pytest.mark.asyncio
async def test_rx_closed_receiver_ends_reading():
    channel, ref = Channel.create(3, asyncio.Queue(), 32, 32)
    ref.close()
    assert await ChannelRx(channel).read() == b""


@pytest.mark.asyncio
async def test_owned_rx_close_requests_channel_close():
    queue = asyncio.Queue()
    channel, _ = Channel.create(5, queue, 32, 32)
    rx = ChannelRx(channel, owned=True)
    rx.close()
    rx.close()
    assert _drain(queue) == [(5, Close())]


@pytest.mark.asyncio
async def test_borrowed_rx_close_sends_nothing():
    queue = asyncio.Queue()
    channel, _ = Channel.create(5, queue, 32, 32)
    ChannelRx(channel).close()
    assert queue.empty()


@pytest.mark.asyncio
async def test_stream_reads_and_writes():
    queue = asyncio.Queue()
    channel, ref = Channel.create(6, queue, 16, 16)
    stream = ChannelStream(
        ChannelTx(queue, 6, channel.window_size, 16), ChannelRx(channel, owned=True)
    )
    ref.send(Data(b"ping"))
    assert await stream.read() == b"ping"
    assert await stream.write(b"pong") == 4
    await stream.flush()
    await stream.shutdown()
    assert _drain(queue) == [(6, Data(b"pong")), (6, Eof())]