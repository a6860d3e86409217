# tests/unit/runners/test_channel.py

"""Unit tests for the length-prefixed worker channel."""

import os
import pickle
import threading

import pytest

from shardrun.exceptions import ChannelClosedError, ChannelError
from shardrun.results import Failure, ResultFull
from shardrun.runners.processes.channel import HEADER, FramedChannel
from shardrun.runners.processes.messages import RunTest, Stop, TestDone
from shardrun.tree import Label, TestPath


@pytest.fixture
def channel_pair():
    """Two connected channel ends, 'a' and 'b'."""
    a_to_b_read, a_to_b_write = os.pipe()
    b_to_a_read, b_to_a_write = os.pipe()
    a = FramedChannel(b_to_a_read, a_to_b_write, "a")
    b = FramedChannel(a_to_b_read, b_to_a_write, "b")
    yield a, b
    a.close()
    b.close()


class TestFramedChannel:
    """Tests for sending and receiving frames."""

    def test_messages_arrive_in_order(self, channel_pair):
        a, b = channel_pair
        path = TestPath((Label("x"),))
        a.send(RunTest(path))
        a.send(Stop())
        assert b.receive() == RunTest(path)
        assert b.receive() == Stop()

    def test_duplex(self, channel_pair):
        a, b = channel_pair
        path = TestPath((Label("x"),))
        done = TestDone(path, ResultFull(path, Failure("nope")), [])
        b.send(done)
        assert a.receive() == done

    def test_large_message_is_reassembled(self, channel_pair):
        a, b = channel_pair
        payload = "x" * 300_000

        sender = threading.Thread(target=a.send, args=(payload,))
        sender.start()
        assert b.receive() == payload
        sender.join()

    def test_partial_frame_waits_for_the_rest(self, channel_pair):
        a, b = channel_pair
        data = pickle.dumps("late", protocol=pickle.HIGHEST_PROTOCOL)
        frame = HEADER.pack(len(data)) + data

        os.write(a.write_fd, frame[:3])
        timer = threading.Timer(0.2, os.write, args=(a.write_fd, frame[3:]))
        timer.start()
        assert b.receive() == "late"
        timer.join()

    def test_peer_close_is_reported(self, channel_pair):
        a, b = channel_pair
        a.close()
        with pytest.raises(ChannelClosedError):
            b.receive()

    def test_send_after_peer_close(self, channel_pair):
        a, b = channel_pair
        b.close()
        with pytest.raises(ChannelClosedError):
            a.send(Stop())

    def test_closed_channel_refuses_use(self, channel_pair):
        a, _ = channel_pair
        a.close()
        a.close()
        with pytest.raises(ChannelClosedError, match="closed channel"):
            a.send(Stop())
        with pytest.raises(ChannelClosedError):
            a.receive()

    def test_undecodable_payload(self, channel_pair):
        a, b = channel_pair
        garbage = b"not a pickle"
        os.write(a.write_fd, HEADER.pack(len(garbage)) + garbage)
        with pytest.raises(ChannelError, match="undecodable"):
            b.receive()
