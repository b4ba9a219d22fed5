"""
Layers package - Application end points of the link.

Contains implementations for:
- Application Layer (message source, delivery sink, verification)
"""

from .application_layer import MessageSource, MessageSink, DataVerifier

__all__ = [
    'MessageSource',
    'MessageSink',
    'DataVerifier'
]
