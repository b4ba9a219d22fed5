"""
Selective Repeat ARQ Sender

This module implements the sender side (entity A) of the Selective Repeat
ARQ protocol: sliding window management, per-packet acknowledgment
tracking, and retransmission driven by a single shared timer.
"""

from typing import Optional, List
from dataclasses import dataclass

from config import WINDOWSIZE, SEQSPACE, TIMEOUT
from .packet import Packet, Message, is_corrupted
from .timer import RetransmissionTimer
from .window import (
    SequenceSlots, validate_window, is_in_window, seq_distance, next_seq
)
from src.utils.logger import SimulationLogger, get_logger


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Attributes:
        base: Oldest unacknowledged sequence number
        next_seq: Next sequence number to assign
        count: Number of packets in the window
        size: Window size
        seqspace: Sequence space modulus
    """
    base: int = 0
    next_seq: int = 0
    count: int = 0
    size: int = WINDOWSIZE
    seqspace: int = SEQSPACE

    @property
    def available_slots(self) -> int:
        """Number of available slots in the window."""
        return self.size - self.count

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.count >= self.size

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def outstanding(self) -> List[int]:
        """Sequence numbers currently occupying the window, oldest first."""
        return [(self.base + i) % self.seqspace for i in range(self.count)]

    def is_outstanding(self, seqnum: int) -> bool:
        """Check if seqnum is one of the packets currently in the window."""
        if not 0 <= seqnum < self.seqspace:
            return False
        if not is_in_window(self.base, seqnum, self.size, self.seqspace):
            return False
        return seq_distance(self.base, seqnum, self.seqspace) < self.count

    def take_next_seq(self) -> int:
        """Get next sequence number and advance the counter."""
        seq = self.next_seq
        self.next_seq = next_seq(self.next_seq, self.seqspace)
        self.count += 1
        return seq

    def advance_base(self):
        """Slide the base past one acknowledged packet."""
        self.base = next_seq(self.base, self.seqspace)
        self.count -= 1


class SRSender:
    """
    Selective Repeat ARQ Sender.

    Implements entity A with:
    - A fixed window of WINDOWSIZE outstanding packets
    - Selective (non-cumulative) acknowledgments
    - One shared retransmission timer; on expiry every unacknowledged
      packet in the window is resent

    Attributes:
        entity: Entity id used with the network services
        services: Collaborator providing to_layer3/start_timer/stop_timer
        window: Send window state
        buffer: Packets awaiting acknowledgment, by sequence number
        acked: Per-slot acknowledgment flags
        due_time: Per-slot expiry bookkeeping (informational)
        timer: Shared retransmission timer
    """

    NAME = "A"

    def __init__(
        self,
        entity: int,
        services,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        timeout: float = TIMEOUT,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            entity: Entity id of this sender
            services: Network services collaborator
            window_size: Send window size
            seqspace: Sequence space modulus
            timeout: Fixed retransmission timeout
            logger: Logger (global logger if None)
        """
        validate_window(window_size, seqspace)

        self.entity = entity
        self.services = services
        self.window_size = window_size
        self.seqspace = seqspace
        self.timeout = timeout
        self.logger = logger or get_logger()

        self.timer = RetransmissionTimer(entity, services, timeout)
        self.init()

    def init(self):
        """Reset sender to its initial state (sequence numbers start at 0)."""
        self.window = SendWindow(size=self.window_size, seqspace=self.seqspace)
        self.buffer: SequenceSlots[Packet] = SequenceSlots(self.seqspace)
        self.acked: SequenceSlots[bool] = SequenceSlots(self.seqspace, False)
        self.due_time: SequenceSlots[float] = SequenceSlots(self.seqspace)
        self.timer.reset()

        # Statistics
        self.packets_sent = 0
        self.packets_resent = 0
        self.window_full = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.corrupted_acks = 0
        self.timeouts = 0

    def output(self, message: Message) -> bool:
        """
        Accept a message from the application layer.

        A message arriving while the window is full is dropped and counted;
        it is not queued for later.

        Args:
            message: Application message

        Returns:
            True if the message was sent, False if dropped
        """
        if self.window.is_full:
            self.window_full += 1
            self.logger.window_full(self.NAME)
            return False

        seqnum = self.window.take_next_seq()
        packet = Packet.make_data(seqnum, message)

        self.buffer[seqnum] = packet
        self.acked[seqnum] = False
        self.due_time[seqnum] = self.services.time + self.timeout

        self.logger.packet_sent(self.NAME, seqnum)
        self.services.to_layer3(self.entity, packet)
        self.packets_sent += 1

        self.timer.start()
        self.logger.window_update(
            self.NAME, self.window.base, self.window.next_seq, self.window.count
        )
        return True

    def input(self, packet: Packet):
        """
        Process a packet from the channel (always an ACK in simplex mode).

        Args:
            packet: Received acknowledgment
        """
        if is_corrupted(packet):
            self.corrupted_acks += 1
            self.logger.debug("Corrupted ACK is received, do nothing", self.NAME)
            return

        acknum = packet.acknum
        self.total_acks_received += 1

        if acknum is None or not 0 <= acknum < self.seqspace or self.acked[acknum]:
            self.duplicate_acks += 1
            self.logger.ack_received(self.NAME, acknum, duplicate=True)
            return

        self.logger.ack_received(self.NAME, acknum, duplicate=False)
        if not self.window.is_outstanding(acknum):
            # Slot is reset when output() reuses the sequence number
            self.logger.debug(f"ACK {acknum} is for a packet not in flight", self.NAME)
        self.acked[acknum] = True
        self.new_acks += 1

        self._slide_window()

        if self.window.count > 0:
            self.timer.restart()
        else:
            self.timer.stop()

    def timer_interrupt(self):
        """Resend every unacknowledged packet in the window."""
        self.timer.fired()
        self.timeouts += 1
        self.logger.timeout(self.NAME, self.window.count)

        resent = self.get_unacked()
        for seqnum in resent:
            self.logger.retransmit(self.NAME, seqnum)
            self.services.to_layer3(self.entity, self.buffer[seqnum])
            self.due_time[seqnum] = self.services.time + self.timeout
            self.packets_resent += 1

        if resent:
            self.timer.start()
        else:
            self.timer.stop()

    def _slide_window(self):
        """Slide the window forward past consecutive acknowledged packets."""
        while self.window.count > 0 and self.acked[self.window.base]:
            base = self.window.base
            self.acked.clear(base)
            self.buffer.clear(base)
            self.due_time.clear(base)
            self.window.advance_base()

        self.logger.window_update(
            self.NAME, self.window.base, self.window.next_seq, self.window.count
        )

    def get_unacked(self) -> List[int]:
        """Unacknowledged sequence numbers in the window, oldest first."""
        return [seq for seq in self.window.outstanding() if not self.acked[seq]]

    def is_idle(self) -> bool:
        """True when nothing is outstanding and the timer is stopped."""
        return self.window.is_empty and not self.timer.running

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'count': self.window.count,
            'size': self.window.size,
            'available': self.window.available_slots,
            'outstanding': self.window.outstanding(),
            'acked': [seq for seq in self.window.outstanding() if self.acked[seq]],
            'timer_running': self.timer.running
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'packets_sent': self.packets_sent,
            'packets_resent': self.packets_resent,
            'window_full': self.window_full,
            'total_acks_received': self.total_acks_received,
            'new_acks': self.new_acks,
            'duplicate_acks': self.duplicate_acks,
            'corrupted_acks': self.corrupted_acks,
            'timeouts': self.timeouts,
            **self.timer.get_statistics()
        }
