"""
Selective Repeat ARQ Receiver

This module implements the receiver side (entity B) of the Selective Repeat
ARQ protocol, including window admission, out-of-order buffering,
selective ACK generation and in-order delivery to the application layer.
"""

from typing import Optional, List

from config import WINDOWSIZE, SEQSPACE
from .packet import Packet, is_corrupted
from .window import (
    SequenceSlots, validate_window, is_in_window, next_seq, previous_seq
)
from src.utils.logger import SimulationLogger, get_logger


class SRReceiver:
    """
    Selective Repeat ARQ Receiver.

    Implements entity B with:
    - Admission window [expected, expected + WINDOWSIZE)
    - Out-of-order packet buffering
    - One selective ACK per accepted packet
    - In-order, exactly-once delivery to the upper layer

    Attributes:
        entity: Entity id used with the network services
        services: Collaborator providing to_layer3/to_layer5
        expected: Next sequence number the application is waiting for
        received: Per-slot received flags
        buffer: Packets received but not yet delivered
    """

    NAME = "B"

    def __init__(
        self,
        entity: int,
        services,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            entity: Entity id of this receiver
            services: Network services collaborator
            window_size: Receive window size
            seqspace: Sequence space modulus
            logger: Logger (global logger if None)
        """
        validate_window(window_size, seqspace)

        self.entity = entity
        self.services = services
        self.window_size = window_size
        self.seqspace = seqspace
        self.logger = logger or get_logger()

        self.init()

    def init(self):
        """Reset receiver to its initial state."""
        self.expected = 0
        self.received: SequenceSlots[bool] = SequenceSlots(self.seqspace, False)
        self.buffer: SequenceSlots[Packet] = SequenceSlots(self.seqspace)

        # Statistics
        self.packets_received = 0
        self.corrupted_packets = 0
        self.duplicate_packets = 0
        self.out_of_window_packets = 0
        self.out_of_order_packets = 0
        self.acks_sent = 0
        self.messages_delivered = 0

    @property
    def last_in_order(self) -> int:
        """Sequence number of the last packet delivered in order."""
        return previous_seq(self.expected, self.seqspace)

    def in_admission_window(self, seqnum: int) -> bool:
        """Check if seqnum may be buffered."""
        if not 0 <= seqnum < self.seqspace:
            return False
        return is_in_window(self.expected, seqnum, self.window_size, self.seqspace)

    def input(self, packet: Packet):
        """
        Process a data packet from the channel.

        Args:
            packet: Received packet
        """
        if is_corrupted(packet):
            self.corrupted_packets += 1
            self.logger.packet_received(self.NAME, packet.seqnum, valid=False)
            self.logger.debug(
                "Packet corrupted, resend ACK for last in-order packet", self.NAME
            )
            self._send_ack(self.last_in_order)
            return

        seqnum = packet.seqnum
        self.packets_received += 1
        self.logger.packet_received(self.NAME, seqnum, valid=True)

        if not self.in_admission_window(seqnum):
            self.out_of_window_packets += 1
            self.logger.debug(
                f"Packet {seqnum} outside window, resend ACK {self.last_in_order}",
                self.NAME
            )
            self._send_ack(self.last_in_order)
            return

        if self.received[seqnum]:
            self.duplicate_packets += 1
            self.logger.debug(f"Duplicate packet {seqnum}, already buffered", self.NAME)
        else:
            self.received[seqnum] = True
            self.buffer[seqnum] = packet
            if seqnum != self.expected:
                self.out_of_order_packets += 1
            self.logger.debug(f"Packet {seqnum} received and buffered", self.NAME)

        self._send_ack(seqnum)
        self._deliver_in_order()

    def _deliver_in_order(self):
        """Deliver the contiguous run of buffered packets starting at expected."""
        while self.received[self.expected]:
            packet = self.buffer[self.expected]
            self.services.to_layer5(self.entity, packet.payload)
            self.messages_delivered += 1
            self.logger.delivered(self.NAME, self.expected)

            self.received.clear(self.expected)
            self.buffer.clear(self.expected)
            self.expected = next_seq(self.expected, self.seqspace)

    def _send_ack(self, acknum: int):
        """
        Send an ACK packet.

        Args:
            acknum: Sequence number to acknowledge
        """
        ack = Packet.make_ack(acknum)
        self.services.to_layer3(self.entity, ack)
        self.acks_sent += 1
        self.logger.ack_sent(self.NAME, acknum)

    def get_buffered(self) -> List[int]:
        """Sequence numbers buffered and waiting for the gap to close."""
        return self.received.occupied()

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'expected': self.expected,
            'size': self.window_size,
            'buffered': self.get_buffered()
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'corrupted_packets': self.corrupted_packets,
            'duplicate_packets': self.duplicate_packets,
            'out_of_window_packets': self.out_of_window_packets,
            'out_of_order_packets': self.out_of_order_packets,
            'acks_sent': self.acks_sent,
            'messages_delivered': self.messages_delivered
        }
