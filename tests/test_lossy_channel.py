"""
Unit tests for the lossy channel model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PAYLOAD_SIZE, CORRUPTED_FIELD_VALUE
from src.arq.packet import Packet, Message, is_corrupted
from src.arq.entity import Entity
from src.channel.lossy_channel import LossyChannel, Corruption


def data_packet(seq=0):
    return Packet.make_data(seq, Message(b"a" * PAYLOAD_SIZE))


class TestLossyChannel:
    """Tests for the independent loss/corruption channel."""

    def test_invalid_probabilities(self):
        with pytest.raises(ValueError):
            LossyChannel(loss_prob=1.5)
        with pytest.raises(ValueError):
            LossyChannel(corrupt_prob=-0.1)

    def test_clean_channel(self):
        """Nothing is lost or corrupted at zero probabilities."""
        channel = LossyChannel(loss_prob=0.0, corrupt_prob=0.0, seed=1)
        packet = data_packet()

        for _ in range(100):
            tx = channel.transmit(packet, Entity.B, current_time=0.0)
            assert not tx.lost
            assert not tx.corrupted
            assert tx.packet == packet

        stats = channel.get_statistics()
        assert stats['packets_offered'] == 100
        assert stats['packets_delivered'] == 100

    def test_always_lost(self):
        channel = LossyChannel(loss_prob=1.0, seed=1)
        tx = channel.transmit(data_packet(), Entity.B, current_time=0.0)

        assert tx.lost
        assert tx.packet is None
        assert tx.arrival_time is None
        assert channel.get_statistics()['packets_lost'] == 1

    def test_always_corrupted(self):
        """Every corrupted copy is detected by the checksum."""
        channel = LossyChannel(corrupt_prob=1.0, seed=3)

        for seq in range(200):
            tx = channel.transmit(data_packet(seq % 13), Entity.B, current_time=0.0)
            assert tx.corrupted
            assert is_corrupted(tx.packet)

    def test_corruption_fields(self):
        """Roughly three quarters of corruptions hit the payload."""
        channel = LossyChannel(corrupt_prob=1.0, seed=11)
        counts = {kind: 0 for kind in Corruption}
        trials = 4000

        for _ in range(trials):
            tx = channel.transmit(data_packet(), Entity.B, current_time=0.0)
            counts[tx.corruption] += 1
            if tx.corruption == Corruption.PAYLOAD:
                assert tx.packet.payload[:1] == b"Z"
            elif tx.corruption == Corruption.SEQNUM:
                assert tx.packet.seqnum == CORRUPTED_FIELD_VALUE
            else:
                assert tx.packet.acknum == CORRUPTED_FIELD_VALUE

        assert abs(counts[Corruption.PAYLOAD] / trials - 0.75) < 0.05
        assert counts[Corruption.SEQNUM] > 0
        assert counts[Corruption.ACKNUM] > 0

    def test_delay_bounds(self):
        channel = LossyChannel(seed=5)
        tx = channel.transmit(data_packet(), Entity.B, current_time=100.0)
        assert 101.0 <= tx.arrival_time <= 110.0

    def test_no_reordering(self):
        """Arrivals in one direction never go backwards."""
        channel = LossyChannel(seed=7)
        last = 0.0
        for i in range(200):
            tx = channel.transmit(data_packet(), Entity.B, current_time=i * 0.5)
            assert tx.arrival_time > last
            last = tx.arrival_time

    def test_directions_independent(self):
        """A backlog towards B does not delay packets towards A."""
        channel = LossyChannel(seed=9)
        for _ in range(20):
            channel.transmit(data_packet(), Entity.B, current_time=0.0)

        ack = Packet.make_ack(0)
        tx = channel.transmit(ack, Entity.A, current_time=0.0)
        assert tx.arrival_time <= 10.0

    def test_reproducible(self):
        first = LossyChannel(loss_prob=0.3, corrupt_prob=0.3, seed=42)
        second = LossyChannel(loss_prob=0.3, corrupt_prob=0.3, seed=42)

        for _ in range(50):
            a = first.transmit(data_packet(), Entity.B, 0.0)
            b = second.transmit(data_packet(), Entity.B, 0.0)
            assert a.lost == b.lost
            assert a.corruption == b.corruption
            assert a.arrival_time == b.arrival_time

    def test_observed_loss_rate(self):
        channel = LossyChannel(loss_prob=0.2, seed=2)
        for _ in range(5000):
            channel.transmit(data_packet(), Entity.B, 0.0)

        assert abs(channel.get_statistics()['observed_loss_rate'] - 0.2) < 0.03

    def test_reset(self):
        channel = LossyChannel(seed=1)
        channel.transmit(data_packet(), Entity.B, 0.0)
        channel.reset(seed=1)

        assert channel.get_statistics()['packets_offered'] == 0
        assert channel.last_arrival == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
