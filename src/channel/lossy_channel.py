"""
Lossy Channel Model

This module implements the unreliable medium between the two entities.
Each packet is independently lost or corrupted with fixed probabilities
and delayed by a random amount, but a direction never reorders the
packets it delivers.
"""

import numpy as np
from enum import Enum
from typing import Optional, Tuple
from dataclasses import dataclass

from config import (
    LOSS_PROB, CORRUPT_PROB,
    CHANNEL_MIN_DELAY, CHANNEL_DELAY_SPREAD, CORRUPTED_FIELD_VALUE
)
from src.arq.packet import Packet


class Corruption(Enum):
    """Which part of a packet the channel overwrote."""
    PAYLOAD = 0
    SEQNUM = 1
    ACKNUM = 2


@dataclass
class Transmission:
    """Outcome of offering one packet to the channel."""
    packet: Optional[Packet]
    arrival_time: Optional[float] = None
    lost: bool = False
    corruption: Optional[Corruption] = None

    @property
    def corrupted(self) -> bool:
        return self.corruption is not None


class LossyChannel:
    """
    Independent loss/corruption channel with in-order delivery.

    Attributes:
        loss_prob: Probability a packet is lost
        corrupt_prob: Probability a surviving packet is corrupted
        min_delay: Minimum one-way delay
        delay_spread: Width of the uniform random extra delay
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = LOSS_PROB,
        corrupt_prob: float = CORRUPT_PROB,
        seed: Optional[int] = None,
        min_delay: float = CHANNEL_MIN_DELAY,
        delay_spread: float = CHANNEL_DELAY_SPREAD
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability of losing a packet
            corrupt_prob: Probability of corrupting a packet
            seed: Random seed for reproducibility
            min_delay: Minimum one-way delay
            delay_spread: Spread of the uniform extra delay
        """
        for name, value in (('loss_prob', loss_prob), ('corrupt_prob', corrupt_prob)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.min_delay = min_delay
        self.delay_spread = delay_spread

        self.rng = np.random.default_rng(seed)

        # Last scheduled arrival time per destination, keeps delivery in order
        self.last_arrival: dict = {}

        # Statistics tracking
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.packets_delivered = 0

    def transmit(
        self,
        packet: Packet,
        destination: int,
        current_time: float
    ) -> Transmission:
        """
        Offer a packet to the channel.

        Args:
            packet: Packet handed down by an entity
            destination: Entity the packet travels to
            current_time: Current simulation time

        Returns:
            Transmission describing the (possibly corrupted) copy and
            its arrival time, or a lost packet
        """
        self.packets_offered += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost += 1
            return Transmission(packet=None, lost=True)

        corruption = None
        if self.rng.random() < self.corrupt_prob:
            packet, corruption = self._corrupt(packet)
            self.packets_corrupted += 1

        arrival_time = self._arrival_time(destination, current_time)
        self.packets_delivered += 1

        return Transmission(
            packet=packet,
            arrival_time=arrival_time,
            corruption=corruption
        )

    def _corrupt(self, packet: Packet) -> Tuple[Packet, Corruption]:
        """
        Overwrite part of a packet, leaving its checksum untouched.

        Three quarters of corruptions hit the first payload byte, the rest
        are split between the sequence and acknowledgment numbers.
        """
        x = self.rng.random()
        if x < 0.75:
            payload = b'Z' + packet.payload[1:]
            return packet.with_fields(payload=payload), Corruption.PAYLOAD
        if x < 0.875:
            return packet.with_fields(seqnum=CORRUPTED_FIELD_VALUE), Corruption.SEQNUM
        return packet.with_fields(acknum=CORRUPTED_FIELD_VALUE), Corruption.ACKNUM

    def _arrival_time(self, destination: int, current_time: float) -> float:
        """
        Schedule after every packet already travelling to destination.

        Args:
            destination: Receiving entity
            current_time: Current simulation time

        Returns:
            Arrival time
        """
        last = max(current_time, self.last_arrival.get(destination, current_time))
        arrival = last + self.min_delay + self.delay_spread * self.rng.random()
        self.last_arrival[destination] = arrival
        return arrival

    def get_statistics(self) -> dict:
        """
        Get channel statistics.

        Returns:
            Dictionary with transmission statistics
        """
        offered = self.packets_offered
        return {
            'packets_offered': offered,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'packets_delivered': self.packets_delivered,
            'observed_loss_rate': self.packets_lost / offered if offered > 0 else 0,
            'observed_corrupt_rate': (self.packets_corrupted / self.packets_delivered
                                      if self.packets_delivered > 0 else 0)
        }

    def reset_statistics(self):
        """Reset all statistics counters."""
        self.packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.packets_delivered = 0

    def reset(self, seed: Optional[int] = None):
        """
        Reset the channel to initial state.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.last_arrival.clear()
        self.reset_statistics()
