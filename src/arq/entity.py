"""
Entity Dispatch for the ARQ link

This module names the two entities of the simplex link and exposes the
callback surface the event scheduler drives: init, application send,
channel packet arrival and timer expiry.
"""

from enum import IntEnum
from typing import Optional

from config import WINDOWSIZE, SEQSPACE, TIMEOUT
from .packet import Packet, Message
from .sender import SRSender
from .receiver import SRReceiver
from src.utils.logger import SimulationLogger, get_logger


class Entity(IntEnum):
    """Entity identifiers."""
    A = 0  # sender
    B = 1  # receiver

    @property
    def peer(self) -> 'Entity':
        """The entity at the other end of the link."""
        return Entity.B if self == Entity.A else Entity.A


class ArqEndpoints:
    """
    Scheduler-facing callback surface for both entities.

    Each callback runs to completion against the addressed entity's own
    state; the two entities share nothing but the packets the scheduler
    carries between them.

    Attributes:
        sender: Entity A state machine
        receiver: Entity B state machine
    """

    def __init__(
        self,
        services,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        timeout: float = TIMEOUT,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize both entities.

        Args:
            services: Network services collaborator shared by both entities
            window_size: Window size
            seqspace: Sequence space modulus
            timeout: Fixed retransmission timeout
            logger: Logger (global logger if None)
        """
        self.logger = logger or get_logger()
        self.sender = SRSender(
            Entity.A, services,
            window_size=window_size,
            seqspace=seqspace,
            timeout=timeout,
            logger=self.logger
        )
        self.receiver = SRReceiver(
            Entity.B, services,
            window_size=window_size,
            seqspace=seqspace,
            logger=self.logger
        )

    @staticmethod
    def _entity(entity: int) -> Entity:
        try:
            return Entity(entity)
        except ValueError:
            raise ValueError(f"Unknown entity: {entity}") from None

    def init(self, entity: int):
        """Initialise one entity; called once before any other callback."""
        if self._entity(entity) == Entity.A:
            self.sender.init()
        else:
            self.receiver.init()

    def on_application_send(self, entity: int, message: Message) -> bool:
        """
        Message handed down by the application layer.

        Returns:
            True if the message was sent, False if dropped
        """
        if self._entity(entity) == Entity.B:
            self.logger.warning(
                "Application send at B ignored, transfer is simplex A to B", "B"
            )
            return False
        return self.sender.output(message)

    def on_channel_packet(self, entity: int, packet: Packet):
        """Packet delivered by the channel."""
        if self._entity(entity) == Entity.A:
            self.sender.input(packet)
        else:
            self.receiver.input(packet)

    def on_timer_fired(self, entity: int):
        """Timer expiry delivered by the scheduler."""
        if self._entity(entity) == Entity.B:
            self.logger.warning("Timer interrupt at B ignored, B runs no timer", "B")
            return
        self.sender.timer_interrupt()

    def get_statistics(self) -> dict:
        """Get statistics of both entities."""
        return {
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics()
        }
