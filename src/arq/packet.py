"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the packet and message structures exchanged between
the two entities, the additive checksum used to detect corruption,
and the fixed-size wire encoding.
"""

import struct
from typing import Optional, Tuple
from dataclasses import dataclass

from config import PAYLOAD_SIZE, NOTINUSE, ACK_FILL_BYTE


def _fixed_payload(data: bytes) -> bytes:
    """Pad data with NUL bytes up to PAYLOAD_SIZE."""
    data = bytes(data)
    if len(data) > PAYLOAD_SIZE:
        raise ValueError(f"Payload too large (max {PAYLOAD_SIZE} bytes)")
    return data.ljust(PAYLOAD_SIZE, b'\x00')


@dataclass(frozen=True)
class Message:
    """
    Application layer unit handed to the sender.

    Attributes:
        data: Fixed 20-byte buffer
    """

    data: bytes

    def __post_init__(self):
        object.__setattr__(self, 'data', _fixed_payload(self.data))


@dataclass(frozen=True)
class Packet:
    """
    Transport Packet Structure.

    Wire Layout (32 bytes, network byte order):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int, NOTINUSE when absent)
        - Checksum: 4 bytes (signed int)
        - Payload: 20 bytes

    Attributes:
        seqnum: Sequence number
        acknum: Acknowledged sequence number, None on data packets
        checksum: Additive checksum as carried by the packet
        payload: Fixed 20-byte payload
    """

    seqnum: int
    acknum: Optional[int] = None
    checksum: int = 0
    payload: bytes = b''

    WIRE_FORMAT = '!iii20s'
    WIRE_SIZE = struct.calcsize(WIRE_FORMAT)

    def __post_init__(self):
        """Validate packet after initialization."""
        if self.seqnum < 0:
            raise ValueError("Sequence number must be non-negative")
        object.__setattr__(self, 'payload', _fixed_payload(self.payload))

    @property
    def is_ack(self) -> bool:
        """True if the packet carries an acknowledgment number."""
        return self.acknum is not None

    def with_fields(self, **changes) -> 'Packet':
        """
        Copy the packet with some fields replaced.

        The checksum is carried over untouched, which is how the channel
        produces corrupted copies.
        """
        fields = {
            'seqnum': self.seqnum,
            'acknum': self.acknum,
            'checksum': self.checksum,
            'payload': self.payload,
        }
        fields.update(changes)
        return Packet(**fields)

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            32-byte wire representation
        """
        acknum = NOTINUSE if self.acknum is None else self.acknum
        return struct.pack(
            self.WIRE_FORMAT,
            self.seqnum,
            acknum,
            self.checksum,
            self.payload
        )

    @classmethod
    def deserialize(cls, data: bytes) -> Tuple[Optional['Packet'], bool]:
        """
        Deserialize bytes to a Packet object.

        Args:
            data: Serialized packet bytes

        Returns:
            Tuple of (Packet or None, checksum valid)
        """
        if len(data) != cls.WIRE_SIZE:
            return None, False

        seqnum, acknum, checksum, payload = struct.unpack(cls.WIRE_FORMAT, data)
        if seqnum < 0:
            return None, False

        packet = cls(
            seqnum=seqnum,
            acknum=None if acknum == NOTINUSE else acknum,
            checksum=checksum,
            payload=payload
        )
        return packet, not is_corrupted(packet)

    @classmethod
    def make_data(cls, seqnum: int, message: Message) -> 'Packet':
        """
        Create a data packet with a valid checksum.

        Args:
            seqnum: Sequence number
            message: Application message

        Returns:
            Data packet
        """
        packet = cls(seqnum=seqnum, acknum=None, payload=message.data)
        return packet.with_fields(checksum=compute_checksum(packet))

    @classmethod
    def make_ack(cls, acknum: int) -> 'Packet':
        """
        Create an acknowledgment packet with a valid checksum.

        Args:
            acknum: Sequence number being acknowledged

        Returns:
            ACK packet
        """
        packet = cls(
            seqnum=0,
            acknum=acknum,
            payload=bytes([ACK_FILL_BYTE]) * PAYLOAD_SIZE
        )
        return packet.with_fields(checksum=compute_checksum(packet))

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum}, payload={self.payload!r})")


def compute_checksum(packet: Packet) -> int:
    """
    Additive checksum over seqnum, acknum and every payload byte.

    Not collision resistant: two different corruptions can cancel out.
    """
    acknum = NOTINUSE if packet.acknum is None else packet.acknum
    return packet.seqnum + acknum + sum(packet.payload)


def is_corrupted(packet: Packet) -> bool:
    """True iff the carried checksum disagrees with the recomputed one."""
    return packet.checksum != compute_checksum(packet)
