"""
Channel package - Unreliable medium models.

Contains implementations for:
- Independent loss/corruption channel with in-order delivery
"""

from .lossy_channel import LossyChannel, Transmission, Corruption

__all__ = [
    'LossyChannel',
    'Transmission',
    'Corruption'
]
