"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure, checksum and encoding
- Circular sequence window arithmetic
- Sender with a single shared retransmission timer
- Receiver with out-of-order buffering
- Timer management and entity dispatch
"""

from .packet import Packet, Message, compute_checksum, is_corrupted
from .window import is_in_window, seq_distance, SequenceSlots
from .sender import SRSender
from .receiver import SRReceiver
from .timer import EntityTimer, RetransmissionTimer
from .entity import Entity, ArqEndpoints

__all__ = [
    'Packet',
    'Message',
    'compute_checksum',
    'is_corrupted',
    'is_in_window',
    'seq_distance',
    'SequenceSlots',
    'SRSender',
    'SRReceiver',
    'EntityTimer',
    'RetransmissionTimer',
    'Entity',
    'ArqEndpoints'
]
