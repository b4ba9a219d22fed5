"""
Application Layer Implementation

This module implements the application layer at both ends of the link:
the message source at A, the delivery sink at B, and verification that
what was delivered matches what the sender accepted.
"""

import hashlib
from typing import List, Optional, Tuple
from dataclasses import dataclass, field

from config import PAYLOAD_SIZE
from src.arq.packet import Message


class MessageSource:
    """
    Generates the application messages handed to the sender.

    Message i is PAYLOAD_SIZE copies of the letter 'a' + i % 26.

    Attributes:
        total: Number of messages to generate
        generated: Number of messages generated so far
    """

    def __init__(self, total: int):
        """
        Initialize message source.

        Args:
            total: Number of messages to generate
        """
        self.total = total
        self.generated = 0

    @staticmethod
    def message(index: int) -> Message:
        """Build message number index."""
        letter = ord('a') + index % 26
        return Message(bytes([letter]) * PAYLOAD_SIZE)

    @property
    def exhausted(self) -> bool:
        return self.generated >= self.total

    def next_message(self) -> Optional[Message]:
        """
        Produce the next message.

        Returns:
            Next message or None once total messages have been produced
        """
        if self.exhausted:
            return None
        msg = self.message(self.generated)
        self.generated += 1
        return msg

    def reset(self):
        """Restart generation from message 0."""
        self.generated = 0


@dataclass
class Delivery:
    """A payload delivered to the application layer."""
    time: float
    payload: bytes


@dataclass
class MessageSink:
    """
    Records every payload delivered to the application at B.

    Attributes:
        deliveries: Delivered payloads in delivery order
    """
    deliveries: List[Delivery] = field(default_factory=list)

    def receive(self, payload: bytes, time: float = 0.0):
        """
        Receive a payload from the transport layer.

        Args:
            payload: Delivered 20-byte payload
            time: Simulation time of the delivery
        """
        self.deliveries.append(Delivery(time=time, payload=bytes(payload)))

    @property
    def payloads(self) -> List[bytes]:
        return [d.payload for d in self.deliveries]

    @property
    def count(self) -> int:
        return len(self.deliveries)

    def reset(self):
        """Forget all deliveries."""
        self.deliveries.clear()


class DataVerifier:
    """
    Utility for verifying delivered messages.
    """

    @staticmethod
    def calculate_checksum(payloads: List[bytes]) -> str:
        """Calculate MD5 checksum of a message stream."""
        return hashlib.md5(b''.join(payloads)).hexdigest()

    @staticmethod
    def verify_messages(
        accepted: List[bytes],
        delivered: List[bytes]
    ) -> Tuple[bool, dict]:
        """
        Verify delivered messages against the messages the sender accepted.

        Delivery is valid when it is a prefix of the accepted stream: same
        order, no gaps, no duplicates. It is complete when nothing is missing.

        Args:
            accepted: Payloads accepted by the sender, in submission order
            delivered: Payloads delivered to the application, in order

        Returns:
            Tuple of (valid, details)
        """
        first_mismatch = -1
        for i, (sent, got) in enumerate(zip(accepted, delivered)):
            if sent != got:
                first_mismatch = i
                break

        too_many = len(delivered) > len(accepted)
        if first_mismatch == -1 and too_many:
            first_mismatch = len(accepted)

        valid = first_mismatch == -1
        complete = valid and len(delivered) == len(accepted)

        details = {
            'accepted_count': len(accepted),
            'delivered_count': len(delivered),
            'complete': complete,
            'first_mismatch_index': first_mismatch,
            'accepted_checksum': DataVerifier.calculate_checksum(accepted),
            'delivered_checksum': DataVerifier.calculate_checksum(delivered)
        }

        return valid, details
