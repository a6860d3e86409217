# src/shardrun/runners/processes/channel.py

"""
Length-prefixed message channel over a pair of pipe descriptors.

Every frame is an 8-byte big-endian payload length followed by the pickled
message. The read descriptor is non-blocking: a read that would block waits
for readability with ``select`` and retries. Writes go out in full before
``send`` returns.

The framing is private to one master and its workers; both sides must run the
same shardrun version.
"""

import errno
import os
import pickle
import select
import struct
from typing import Any

import structlog

from shardrun.exceptions import ChannelClosedError, ChannelError
from shardrun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runners.processes.channel")

HEADER = struct.Struct("!Q")
# Bounds each wait on a would-block read so a closed peer is noticed.
READ_POLL_INTERVAL = 0.5


class FramedChannel:
    """One end of a duplex worker channel."""

    def __init__(self, read_fd: int, write_fd: int, shard_id: str):
        self.read_fd = read_fd
        self.write_fd = write_fd
        self.shard_id = shard_id
        self.closed = False
        os.set_blocking(read_fd, False)
        os.set_inheritable(read_fd, False)
        os.set_inheritable(write_fd, False)

    def fileno(self) -> int:
        """The read descriptor, for select()."""
        return self.read_fd

    def send(self, message: Any) -> None:
        if self.closed:
            raise ChannelClosedError("Send on closed channel", self.shard_id)
        payload = pickle.dumps(message, protocol=pickle.HIGHEST_PROTOCOL)
        data = memoryview(HEADER.pack(len(payload)) + payload)
        try:
            while data:
                written = os.write(self.write_fd, data)
                data = data[written:]
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ChannelClosedError("Peer closed the channel while sending", self.shard_id, e) from e
        except OSError as e:
            raise ChannelError("Failed to send message", self.shard_id, e) from e

    def _read_exactly(self, size: int) -> bytes:
        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            try:
                chunk = os.read(self.read_fd, remaining)
            except BlockingIOError:
                select.select([self.read_fd], [], [], READ_POLL_INTERVAL)
                continue
            except InterruptedError:
                continue
            except OSError as e:
                if e.errno == errno.EBADF:
                    raise ChannelClosedError("Read on closed descriptor", self.shard_id, e) from e
                raise ChannelError("Failed to read message", self.shard_id, e) from e
            if not chunk:
                raise ChannelClosedError("Peer closed the channel", self.shard_id)
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def receive(self) -> Any:
        """Blocks until one full frame has arrived and returns its message."""
        if self.closed:
            raise ChannelClosedError("Receive on closed channel", self.shard_id)
        (size,) = HEADER.unpack(self._read_exactly(HEADER.size))
        payload = self._read_exactly(size)
        try:
            return pickle.loads(payload)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError) as e:
            raise ChannelError("Received an undecodable message", self.shard_id, e) from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for fd in (self.write_fd, self.read_fd):
            try:
                os.close(fd)
            except OSError:
                pass


# 🔼⚙️
