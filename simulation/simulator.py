"""
Main Simulator - Event-Driven Network Emulation

This module implements the discrete-event engine that drives both ARQ
entities: it generates application messages at A, carries packets across
the lossy channel, runs one timer per entity and records what B delivers.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import time
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MESSAGE_INTERVAL, TRACE,
    MAX_SIMULATION_TIME, WINDOWSIZE, SEQSPACE, TIMEOUT, RNG_SEED_BASE,
    trace_to_log_level
)
from src.arq.packet import Packet
from src.arq.entity import Entity, ArqEndpoints
from src.arq.timer import EntityTimer
from src.channel.lossy_channel import LossyChannel
from src.layers.application_layer import MessageSource, MessageSink, DataVerifier
from src.utils.metrics import MetricsCollector
from src.utils.logger import SimulationLogger


class EventType(Enum):
    """Types of simulation events."""
    FROM_LAYER5 = 0       # Application hands a message to A
    FROM_LAYER3 = 1       # Packet arrives at an entity
    TIMER_INTERRUPT = 2   # Entity timer expires


@dataclass(order=True)
class SimEvent:
    """Simulation event, ordered by time then insertion order."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    entity: Entity = field(compare=False)
    packet: Optional[Packet] = field(compare=False, default=None)
    generation: int = field(compare=False, default=0)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Traffic
    num_messages: int = NUM_MESSAGES
    message_interval: float = MESSAGE_INTERVAL

    # Channel
    loss_prob: float = LOSS_PROB
    corrupt_prob: float = CORRUPT_PROB

    # Protocol
    window_size: int = WINDOWSIZE
    seqspace: int = SEQSPACE
    timeout: float = TIMEOUT

    # Simulation parameters
    seed: int = RNG_SEED_BASE
    trace: int = TRACE
    max_time: float = MAX_SIMULATION_TIME
    log_level: Optional[int] = None

    def get_log_level(self) -> int:
        """Explicit log level, or the one implied by the trace level."""
        if self.log_level is not None:
            return self.log_level
        return trace_to_log_level(self.trace)


class Simulator:
    """
    Main Event-Driven Simulator.

    Provides the network services the entities call (to_layer3, to_layer5,
    start_timer, stop_timer and the current time) and dispatches events to
    them one at a time.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        # Create logger
        self.logger = SimulationLogger(
            name="Sim",
            level=config.get_log_level()
        )

        # Channel shared by both directions; ordering is kept per destination
        self.channel = LossyChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            seed=config.seed
        )

        # Both protocol entities
        self.endpoints = ArqEndpoints(
            self,
            window_size=config.window_size,
            seqspace=config.seqspace,
            timeout=config.timeout,
            logger=self.logger
        )

        # Scheduler-side timers
        self.timers = {entity: EntityTimer(entity) for entity in Entity}

        # Application layer
        self.source = MessageSource(config.num_messages)
        self.sink = MessageSink()
        self.accepted: List[bytes] = []
        self.accepted_times: List[float] = []

        # Metrics
        self.metrics = MetricsCollector()

        # Simulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._counter = itertools.count()

        # Misuse counters
        self.timer_warnings = 0

    # ------------------------------------------------------------------
    # Network services used by the entities
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        return self.current_time

    def to_layer3(self, entity: int, packet: Packet):
        """Hand a packet from entity to the channel towards its peer."""
        source = Entity(entity)
        destination = source.peer
        self.metrics.record_packet_offered(is_ack=(source == Entity.B))

        transmission = self.channel.transmit(packet, destination, self.current_time)
        if transmission.lost:
            self.metrics.record_packet_lost()
            self.logger.debug(f"Channel lost packet from {source.name}", "CHAN")
            return
        if transmission.corrupted:
            self.metrics.record_packet_corrupted()
            self.logger.debug(
                f"Channel corrupted {transmission.corruption.name} "
                f"of packet from {source.name}", "CHAN"
            )

        self._schedule_event(
            transmission.arrival_time,
            EventType.FROM_LAYER3,
            destination,
            packet=transmission.packet
        )

    def to_layer5(self, entity: int, payload: bytes):
        """Hand a payload up to the application at entity."""
        self.sink.receive(payload, self.current_time)
        index = self.sink.count - 1
        delay = None
        if index < len(self.accepted_times):
            delay = self.current_time - self.accepted_times[index]
        self.metrics.record_message_delivered(delay)

    def start_timer(self, entity: int, increment: float):
        """Start the entity's timer; warn and ignore if already running."""
        timer = self.timers[Entity(entity)]
        if timer.is_running:
            self.timer_warnings += 1
            self.logger.warning(
                f"start_timer: timer of {Entity(entity).name} already started", "TIMER"
            )
            return
        event = timer.start(self.current_time, increment)
        self._schedule_event(
            event.expiry_time,
            EventType.TIMER_INTERRUPT,
            Entity(entity),
            generation=event.generation
        )

    def stop_timer(self, entity: int):
        """Cancel the entity's timer; warn if none is running."""
        timer = self.timers[Entity(entity)]
        if not timer.is_running:
            self.timer_warnings += 1
            self.logger.warning(
                f"stop_timer: no timer of {Entity(entity).name} to cancel", "TIMER"
            )
            return
        # The heap entry stays behind and is skipped by generation
        timer.stop()

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def _schedule_event(
        self,
        time: float,
        event_type: EventType,
        entity: Entity,
        packet: Optional[Packet] = None,
        generation: int = 0
    ):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=next(self._counter),
            event_type=event_type,
            entity=entity,
            packet=packet,
            generation=generation
        )
        heapq.heappush(self.event_queue, event)

    def _schedule_next_message(self):
        """Schedule the next application message, if any remain."""
        if self.source.exhausted:
            return
        gap = self.config.message_interval * 2 * self.channel.rng.random()
        self._schedule_event(self.current_time + gap, EventType.FROM_LAYER5, Entity.A)

    def _handle_from_layer5(self, event: SimEvent):
        """Application message arrives at A."""
        message = self.source.next_message()
        self._schedule_next_message()
        if message is None:
            return

        accepted = self.endpoints.on_application_send(event.entity, message)
        self.metrics.record_message_generated(accepted)
        if accepted:
            self.accepted.append(message.data)
            self.accepted_times.append(self.current_time)

        sender = self.endpoints.sender
        self.metrics.record_window_occupancy(sender.window.count, sender.window.size)

    def _handle_timer_interrupt(self, event: SimEvent):
        """Timer expiry, skipped if the run was cancelled or restarted."""
        timer = self.timers[event.entity]
        if not timer.matches(event):
            return
        timer.expire()
        self.endpoints.on_timer_fired(event.entity)

    def _is_complete(self) -> bool:
        """Every accepted message delivered and nothing left to generate."""
        return self.source.exhausted and self.sink.count >= len(self.accepted)

    def reset(self, seed: Optional[int] = None):
        """
        Return the simulator and both entities to time zero.

        Args:
            seed: New channel seed (keeps config.seed if None)
        """
        if seed is not None:
            self.config.seed = seed

        self.event_queue.clear()
        self._counter = itertools.count()
        self.current_time = 0.0
        self.timer_warnings = 0

        # Scheduler timers are rebuilt before the entities forget theirs
        self.channel.reset(self.config.seed)
        self.timers = {entity: EntityTimer(entity) for entity in Entity}
        self.source.reset()
        self.sink.reset()
        self.accepted = []
        self.accepted_times = []
        for entity in Entity:
            self.endpoints.init(entity)

        self.metrics.reset()

    def run(self) -> Dict:
        """Run the simulation."""
        self.reset()
        self.metrics.start(0.0)
        self.logger.set_sim_time(0.0)
        self.logger.simulation_start({
            'messages': self.config.num_messages,
            'loss': self.config.loss_prob,
            'corrupt': self.config.corrupt_prob,
            'interval': self.config.message_interval,
            'seed': self.config.seed
        })
        sim_start_real = time.time()

        self._schedule_next_message()

        # Main loop
        while self.event_queue:
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.max_time:
                self.logger.warning(
                    f"Time limit {self.config.max_time} reached, stopping", "SIM"
                )
                break

            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)

            if event.event_type == EventType.FROM_LAYER5:
                self._handle_from_layer5(event)
            elif event.event_type == EventType.FROM_LAYER3:
                self.endpoints.on_channel_packet(event.entity, event.packet)
            elif event.event_type == EventType.TIMER_INTERRUPT:
                self._handle_timer_interrupt(event)

            self.metrics.update(self.current_time)

        # Finish
        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        # Verify
        valid, verify_details = DataVerifier.verify_messages(
            self.accepted,
            self.sink.payloads
        )

        metrics_summary = self.metrics.get_summary()
        self.logger.simulation_end(metrics_summary)

        return {
            'config': {
                'num_messages': self.config.num_messages,
                'loss_prob': self.config.loss_prob,
                'corrupt_prob': self.config.corrupt_prob,
                'message_interval': self.config.message_interval,
                'window_size': self.config.window_size,
                'seqspace': self.config.seqspace,
                'timeout': self.config.timeout,
                'seed': self.config.seed
            },
            'metrics': metrics_summary,
            'statistics': {
                **self.endpoints.get_statistics(),
                'channel': self.channel.get_statistics(),
                'timer_warnings': self.timer_warnings
            },
            'verification': {'valid': valid, **verify_details},
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': valid and self._is_complete()
        }


if __name__ == "__main__":
    print("=" * 60)
    print("SIMULATOR TEST")
    print("=" * 60)

    config = SimulatorConfig(
        num_messages=50,
        loss_prob=0.1,
        corrupt_prob=0.1,
        message_interval=10.0,
        seed=42,
        trace=1
    )

    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Loss: {config.loss_prob}")
    print(f"  Corruption: {config.corrupt_prob}")
    print(f"  Timeout: {config.timeout}")

    sim = Simulator(config)
    print("\nRunning simulation...")

    results = sim.run()

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery valid: {results['verification']['valid']}")
    print(f"  Simulation time: {results['simulation_time']:.2f}")
    print(f"  Real time: {results['real_time']:.4f} s")

    metrics = results['metrics']
    print(f"\nMetrics:")
    print(f"  Delivered: {metrics['messages_delivered']}/{metrics['messages_accepted']}")
    print(f"  Throughput: {metrics['throughput']:.4f} msg/t")
    print(f"  Efficiency: {metrics['efficiency']*100:.2f}%")
    print(f"  Resent: {results['statistics']['sender']['packets_resent']}")
