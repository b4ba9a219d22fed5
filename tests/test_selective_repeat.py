"""
Unit tests for the Selective Repeat ARQ protocol.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import WINDOWSIZE, SEQSPACE, TIMEOUT, PAYLOAD_SIZE
from src.arq.packet import Packet, Message, compute_checksum, is_corrupted
from src.arq.window import (
    is_in_window, seq_distance, next_seq, previous_seq,
    validate_window, SequenceSlots
)
from src.arq.sender import SRSender, SendWindow
from src.arq.receiver import SRReceiver
from src.arq.timer import EntityTimer, RetransmissionTimer
from src.arq.entity import Entity, ArqEndpoints
from src.utils.logger import SimulationLogger, LogLevel


class RecordingServices:
    """Network services stand-in that records every call."""

    def __init__(self):
        self.time = 0.0
        self.sent = []
        self.delivered = []
        self.timer_calls = []

    def to_layer3(self, entity, packet):
        self.sent.append((entity, packet))

    def to_layer5(self, entity, payload):
        self.delivered.append(payload)

    def start_timer(self, entity, increment):
        self.timer_calls.append(('start', entity, increment))

    def stop_timer(self, entity):
        self.timer_calls.append(('stop', entity))

    @property
    def sent_seqnums(self):
        return [p.seqnum for _, p in self.sent]

    @property
    def sent_acknums(self):
        return [p.acknum for _, p in self.sent]


def quiet_logger():
    return SimulationLogger(name="Test", level=LogLevel.CRITICAL)


def letter_message(index):
    return Message(bytes([ord('a') + index % 26]) * PAYLOAD_SIZE)


@pytest.fixture
def services():
    return RecordingServices()


@pytest.fixture
def sender(services):
    return SRSender(Entity.A, services, logger=quiet_logger())


@pytest.fixture
def receiver(services):
    return SRReceiver(Entity.B, services, logger=quiet_logger())


class TestPacket:
    """Tests for Packet and Message classes."""

    def test_message_padded_to_payload_size(self):
        """Short messages are padded to a fixed 20 bytes."""
        msg = Message(b"hello")
        assert len(msg.data) == PAYLOAD_SIZE
        assert msg.data.startswith(b"hello")

    def test_message_too_long(self):
        """Messages longer than the payload are rejected."""
        with pytest.raises(ValueError):
            Message(b"x" * (PAYLOAD_SIZE + 1))

    def test_negative_seqnum_rejected(self):
        with pytest.raises(ValueError):
            Packet(seqnum=-1)

    def test_data_packet_checksum(self):
        """Data checksum covers seqnum, the unused acknum and the payload."""
        packet = Packet.make_data(3, Message(b"a" * PAYLOAD_SIZE))

        assert packet.acknum is None
        assert not packet.is_ack
        assert packet.checksum == 3 + (-1) + ord('a') * PAYLOAD_SIZE
        assert not is_corrupted(packet)

    def test_ack_packet(self):
        """ACKs carry seqnum 0 and a payload of '0' characters."""
        ack = Packet.make_ack(7)

        assert ack.is_ack
        assert ack.seqnum == 0
        assert ack.acknum == 7
        assert ack.payload == b"0" * PAYLOAD_SIZE
        assert ack.checksum == 7 + ord('0') * PAYLOAD_SIZE
        assert not is_corrupted(ack)

    def test_checksum_deterministic(self):
        packet = Packet.make_data(5, Message(b"determinism"))
        assert compute_checksum(packet) == compute_checksum(packet)

    def test_payload_byte_change_detected(self):
        """Overwriting the first payload byte is detected."""
        packet = Packet.make_data(1, Message(b"a" * PAYLOAD_SIZE))
        damaged = packet.with_fields(payload=b"Z" + packet.payload[1:])

        assert damaged.checksum == packet.checksum
        assert is_corrupted(damaged)

    def test_header_change_detected(self):
        packet = Packet.make_data(1, Message(b"abc"))
        assert is_corrupted(packet.with_fields(seqnum=999999))
        assert is_corrupted(packet.with_fields(acknum=999999))

    def test_checksum_can_collide(self):
        """Compensating changes cancel out in an additive checksum."""
        packet = Packet.make_data(2, Message(b"ab" + b"a" * 18))
        swapped = packet.with_fields(payload=b"ba" + packet.payload[2:])
        assert not is_corrupted(swapped)

    def test_serialization(self):
        """Packets encode to 32 bytes and decode back."""
        packet = Packet.make_data(12, Message(b"wire format"))
        data = packet.serialize()

        assert len(data) == Packet.WIRE_SIZE == 32

        decoded, valid = Packet.deserialize(data)
        assert valid
        assert decoded == packet
        assert decoded.acknum is None

    def test_deserialize_wrong_length(self):
        decoded, valid = Packet.deserialize(b"\x00" * 10)
        assert decoded is None
        assert not valid


class TestWindowArithmetic:
    """Tests for circular sequence window helpers."""

    def test_wraparound_window(self):
        """base=10 covers 10, 11, 12, 0, 1, 2."""
        members = {s for s in range(SEQSPACE) if is_in_window(10, s)}
        assert members == {10, 11, 12, 0, 1, 2}

    def test_membership_all_bases(self):
        """Every base admits exactly the next WINDOWSIZE values."""
        for base in range(SEQSPACE):
            expected = {(base + i) % SEQSPACE for i in range(WINDOWSIZE)}
            for seq in range(SEQSPACE):
                assert is_in_window(base, seq) == (seq in expected), (base, seq)

    def test_window_of_one(self):
        assert is_in_window(4, 4, window_size=1, seqspace=5)
        assert not is_in_window(4, 0, window_size=1, seqspace=5)

    def test_helpers(self):
        assert seq_distance(10, 2) == 5
        assert next_seq(12) == 0
        assert previous_seq(0) == SEQSPACE - 1
        assert previous_seq(5) == 4

    def test_validate_window(self):
        validate_window(6, 13)
        validate_window(6, 7)
        with pytest.raises(ValueError):
            validate_window(6, 6)
        with pytest.raises(ValueError):
            validate_window(0, 13)


class TestSequenceSlots:
    """Tests for the fixed-capacity slot container."""

    def test_indexing_wraps(self):
        slots = SequenceSlots(SEQSPACE, False)
        slots[SEQSPACE + 2] = True
        assert slots[2] is True
        assert len(slots) == SEQSPACE

    def test_clear_and_occupied(self):
        slots = SequenceSlots(SEQSPACE)
        slots[1] = "x"
        slots[4] = "y"
        assert slots.occupied() == [1, 4]

        slots.clear(1)
        assert slots[1] is None
        assert slots.occupied() == [4]

        slots.clear_all()
        assert slots.occupied() == []


class TestSendWindow:
    """Tests for the sender's window bookkeeping."""

    def test_take_and_advance(self):
        window = SendWindow()
        assert window.take_next_seq() == 0
        assert window.take_next_seq() == 1
        assert window.count == 2
        window.advance_base()
        assert window.base == 1
        assert window.count == 1

    def test_outstanding_wraps(self):
        window = SendWindow(base=11, next_seq=11)
        for _ in range(4):
            window.take_next_seq()
        assert window.outstanding() == [11, 12, 0, 1]
        assert window.is_outstanding(0)
        assert not window.is_outstanding(2)
        assert not window.is_outstanding(10)
        assert not window.is_outstanding(999999)


class TestSRSender:
    """Tests for Selective Repeat Sender."""

    def test_first_send(self, sender, services):
        """A send emits one data packet and starts the timer."""
        assert sender.output(letter_message(0))

        assert services.sent_seqnums == [0]
        assert services.timer_calls == [('start', Entity.A, TIMEOUT)]
        assert not is_corrupted(services.sent[0][1])
        assert sender.window.count == 1

    def test_window_fills_then_rejects(self, sender, services):
        """Six sends fill the window, the seventh is dropped."""
        for i in range(WINDOWSIZE):
            assert sender.output(letter_message(i))

        assert sender.window.is_full
        assert not sender.output(letter_message(WINDOWSIZE))
        assert sender.window_full == 1
        assert services.sent_seqnums == list(range(WINDOWSIZE))
        # Timer started once only
        assert services.timer_calls == [('start', Entity.A, TIMEOUT)]

    def test_ack_frees_slot(self, sender, services):
        for i in range(WINDOWSIZE):
            sender.output(letter_message(i))
        sender.input(Packet.make_ack(0))

        assert sender.window.base == 1
        assert sender.output(letter_message(WINDOWSIZE))
        assert services.sent_seqnums[-1] == WINDOWSIZE

    def test_non_cumulative_ack(self, sender):
        """Acking ahead of the base does not slide the window."""
        for i in range(4):
            sender.output(letter_message(i))

        sender.input(Packet.make_ack(2))
        assert sender.window.base == 0
        assert sender.window.count == 4

        sender.input(Packet.make_ack(1))
        assert sender.window.base == 0

        sender.input(Packet.make_ack(0))
        assert sender.window.base == 3
        assert sender.window.count == 1

    def test_ack_restarts_or_stops_timer(self, sender, services):
        sender.output(letter_message(0))
        sender.output(letter_message(1))

        sender.input(Packet.make_ack(0))
        assert services.timer_calls[1:] == [
            ('stop', Entity.A), ('start', Entity.A, TIMEOUT)
        ]

        sender.input(Packet.make_ack(1))
        assert services.timer_calls[-1] == ('stop', Entity.A)
        assert sender.is_idle()

    def test_duplicate_ack_ignored(self, sender):
        for i in range(3):
            sender.output(letter_message(i))
        sender.input(Packet.make_ack(1))
        sender.input(Packet.make_ack(1))

        assert sender.new_acks == 1
        assert sender.duplicate_acks == 1
        assert sender.window.count == 3

    def test_ack_for_packet_not_in_flight(self, sender, services):
        """An ack outside the outstanding packets restarts the timer only."""
        for i in range(3):
            sender.output(letter_message(i))
        services.timer_calls.clear()
        sender.input(Packet.make_ack(SEQSPACE - 1))
        sender.input(Packet.make_ack(5))

        assert sender.new_acks == 2
        assert sender.duplicate_acks == 0
        assert sender.window.base == 0
        assert sender.window.count == 3
        assert sender.get_unacked() == [0, 1, 2]
        assert services.timer_calls == [
            ('stop', Entity.A), ('start', Entity.A, TIMEOUT),
            ('stop', Entity.A), ('start', Entity.A, TIMEOUT)
        ]

    def test_repeated_ack_after_slide_restarts_timer(self, sender, services):
        """A re-ack of a packet already slid out restarts the timer."""
        sender.output(letter_message(0))
        sender.output(letter_message(1))
        sender.input(Packet.make_ack(0))
        assert sender.window.base == 1
        services.timer_calls.clear()

        sender.input(Packet.make_ack(0))

        assert services.timer_calls == [('stop', Entity.A), ('start', Entity.A, TIMEOUT)]
        assert sender.new_acks == 2
        assert sender.duplicate_acks == 0
        assert sender.window.base == 1
        assert sender.window.count == 1

        sender.input(Packet.make_ack(0))
        assert sender.duplicate_acks == 1

    def test_reused_seqnum_starts_unacked(self, sender):
        """A slot marked by an early ack is cleared when the seqnum is reused."""
        sender.output(letter_message(0))
        sender.input(Packet.make_ack(1))
        sender.output(letter_message(1))

        assert sender.get_unacked() == [0, 1]

    def test_invalid_acknum_is_duplicate(self, sender, services):
        sender.output(letter_message(0))
        services.timer_calls.clear()
        for acknum in (None, SEQSPACE + 3):
            packet = Packet(seqnum=0, acknum=acknum)
            sender.input(packet.with_fields(checksum=compute_checksum(packet)))

        assert sender.duplicate_acks == 2
        assert sender.new_acks == 0
        assert services.timer_calls == []

    def test_corrupted_ack_ignored(self, sender):
        sender.output(letter_message(0))
        ack = Packet.make_ack(0)
        sender.input(ack.with_fields(payload=b"Z" + ack.payload[1:]))

        assert sender.corrupted_acks == 1
        assert sender.total_acks_received == 0
        assert sender.window.count == 1

    def test_timeout_resends_unacked_only(self, sender, services):
        """With 3 acked and 2, 4 unacked, a timeout resends 2 and 4."""
        for i in range(5):
            sender.output(letter_message(i))
        sender.input(Packet.make_ack(0))
        sender.input(Packet.make_ack(1))
        sender.input(Packet.make_ack(3))
        assert sender.window.base == 2

        services.sent.clear()
        sender.timer_interrupt()

        assert services.sent_seqnums == [2, 4]
        assert sender.packets_resent == 2
        assert sender.timeouts == 1
        assert services.timer_calls[-1] == ('start', Entity.A, TIMEOUT)

    def test_timeout_skips_acked_base(self, sender, services):
        """A packet marked acked at the base is not resent."""
        for i in range(5):
            sender.output(letter_message(i))
        sender.input(Packet.make_ack(0))
        sender.input(Packet.make_ack(1))
        sender.acked[2] = True

        services.sent.clear()
        sender.timer_interrupt()

        assert services.sent_seqnums == [3, 4]

    def test_resent_packet_identical(self, sender, services):
        sender.output(letter_message(0))
        original = services.sent[0][1]
        sender.timer_interrupt()
        assert services.sent[-1][1] == original

    def test_sequence_wraps(self, sender, services):
        """Sequence numbers wrap modulo SEQSPACE."""
        for i in range(SEQSPACE + 2):
            sender.output(letter_message(i))
            sender.input(Packet.make_ack(i % SEQSPACE))

        assert services.sent_seqnums[SEQSPACE:] == [0, 1]
        assert sender.window.base == 2
        assert sender.window.is_empty

    def test_statistics(self, sender):
        sender.output(letter_message(0))
        stats = sender.get_statistics()
        assert stats['packets_sent'] == 1
        assert stats['timer_starts'] == 1


class TestSRReceiver:
    """Tests for Selective Repeat Receiver."""

    def test_in_order_delivery(self, receiver, services):
        for i in range(3):
            receiver.input(Packet.make_data(i, letter_message(i)))

        assert services.sent_acknums == [0, 1, 2]
        assert services.delivered == [letter_message(i).data for i in range(3)]
        assert receiver.expected == 3

    def test_reordered_arrival(self, receiver, services):
        """1 before 0: buffer 1, then deliver 0 and 1 in order."""
        receiver.input(Packet.make_data(1, letter_message(1)))

        assert services.sent_acknums == [1]
        assert services.delivered == []
        assert receiver.get_buffered() == [1]

        receiver.input(Packet.make_data(0, letter_message(0)))

        assert services.sent_acknums == [1, 0]
        assert services.delivered == [letter_message(0).data, letter_message(1).data]
        assert receiver.expected == 2
        assert receiver.get_buffered() == []

    def test_corrupted_packet(self, receiver, services):
        """Corruption triggers an ack for the packet before expected."""
        packet = Packet.make_data(0, letter_message(0))
        receiver.input(packet.with_fields(payload=b"Z" + packet.payload[1:]))

        assert services.sent_acknums == [SEQSPACE - 1]
        assert services.delivered == []
        assert receiver.expected == 0
        assert receiver.corrupted_packets == 1

    def test_corrupted_after_progress(self, receiver, services):
        for i in range(4):
            receiver.input(Packet.make_data(i, letter_message(i)))
        packet = Packet.make_data(4, letter_message(4))
        receiver.input(packet.with_fields(seqnum=999999))

        assert services.sent_acknums[-1] == 3
        assert receiver.expected == 4

    def test_out_of_window_packet(self, receiver, services):
        """An already delivered packet is re-acked as expected - 1."""
        for i in range(3):
            receiver.input(Packet.make_data(i, letter_message(i)))
        receiver.input(Packet.make_data(1, letter_message(1)))

        assert services.sent_acknums[-1] == 2
        assert len(services.delivered) == 3
        assert receiver.out_of_window_packets == 1

    def test_beyond_window_not_buffered(self, receiver, services):
        receiver.input(Packet.make_data(WINDOWSIZE, letter_message(0)))

        assert services.sent_acknums == [SEQSPACE - 1]
        assert receiver.get_buffered() == []

    def test_duplicate_buffered_packet(self, receiver, services):
        receiver.input(Packet.make_data(2, letter_message(2)))
        receiver.input(Packet.make_data(2, letter_message(2)))

        assert services.sent_acknums == [2, 2]
        assert receiver.duplicate_packets == 1
        assert receiver.get_buffered() == [2]

    def test_gap_fill_drains_run(self, receiver, services):
        for seq in (3, 1, 2, 5):
            receiver.input(Packet.make_data(seq, letter_message(seq)))
        assert services.delivered == []

        receiver.input(Packet.make_data(0, letter_message(0)))

        assert services.delivered == [letter_message(i).data for i in range(4)]
        assert receiver.expected == 4
        assert receiver.get_buffered() == [5]

    def test_wraparound(self, receiver, services):
        for i in range(SEQSPACE + 3):
            receiver.input(Packet.make_data(i % SEQSPACE, letter_message(i)))

        assert len(services.delivered) == SEQSPACE + 3
        assert services.delivered[-1] == letter_message(SEQSPACE + 2).data
        assert receiver.expected == 3


class TestTimers:
    """Tests for scheduler and protocol timers."""

    def test_entity_timer_generation(self):
        timer = EntityTimer(entity=0)
        first = timer.start(current_time=10.0, duration=24.0)

        assert first.expiry_time == 34.0
        assert timer.matches(first)

        second = timer.start(current_time=20.0, duration=24.0)
        assert not timer.matches(first)
        assert timer.matches(second)

        timer.stop()
        assert not timer.matches(second)

    def test_entity_timer_remaining(self):
        timer = EntityTimer(entity=0)
        timer.start(current_time=0.0, duration=24.0)
        assert timer.get_remaining_time(10.0) == 14.0
        timer.expire()
        assert timer.get_remaining_time(10.0) == 0.0
        assert timer.expirations == 1

    def test_retransmission_timer_is_idempotent(self, services):
        timer = RetransmissionTimer(Entity.A, services)
        timer.start()
        timer.start()
        timer.stop()
        timer.stop()

        assert services.timer_calls == [('start', Entity.A, TIMEOUT), ('stop', Entity.A)]

    def test_fired_allows_restart(self, services):
        timer = RetransmissionTimer(Entity.A, services)
        timer.start()
        timer.fired()
        timer.start()

        assert [c[0] for c in services.timer_calls] == ['start', 'start']
        assert timer.get_statistics()['timer_expirations'] == 1

    def test_reset_is_silent(self, services):
        """reset() clears running state without a scheduler call."""
        timer = RetransmissionTimer(Entity.A, services)
        timer.start()
        services.timer_calls.clear()

        timer.reset()

        assert not timer.running
        assert services.timer_calls == []
        timer.start()
        assert services.timer_calls == [('start', Entity.A, TIMEOUT)]


class TestArqEndpoints:
    """Tests for the entity callback surface."""

    def test_dispatch(self, services):
        endpoints = ArqEndpoints(services, logger=quiet_logger())
        endpoints.init(Entity.A)
        endpoints.init(Entity.B)

        assert endpoints.on_application_send(Entity.A, letter_message(0))
        _, packet = services.sent[-1]
        endpoints.on_channel_packet(Entity.B, packet)

        assert services.delivered == [letter_message(0).data]
        _, ack = services.sent[-1]
        endpoints.on_channel_packet(Entity.A, ack)
        assert endpoints.sender.window.is_empty

    def test_b_side_calls_ignored(self, services):
        endpoints = ArqEndpoints(services, logger=quiet_logger())

        assert not endpoints.on_application_send(Entity.B, letter_message(0))
        endpoints.on_timer_fired(Entity.B)
        assert services.sent == []

    def test_unknown_entity(self, services):
        endpoints = ArqEndpoints(services, logger=quiet_logger())
        with pytest.raises(ValueError):
            endpoints.init(5)

    def test_invalid_window(self, services):
        with pytest.raises(ValueError):
            ArqEndpoints(services, window_size=8, seqspace=8, logger=quiet_logger())

    def test_peer(self):
        assert Entity.A.peer == Entity.B
        assert Entity.B.peer == Entity.A


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
