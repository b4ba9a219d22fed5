"""
Timer Management for Selective Repeat ARQ

This module provides the single-timer-per-entity model: the scheduler-side
timer that owns expiry times, and the protocol-side handle the sender uses
to keep its timer running exactly while packets are outstanding.
"""

from dataclasses import dataclass, field
from enum import Enum

from config import TIMEOUT


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


@dataclass(order=True)
class TimerEvent:
    """Timer expiry entry for priority queue management."""
    expiry_time: float
    entity: int = field(compare=False)
    generation: int = field(compare=False)  # To invalidate cancelled timers


@dataclass
class EntityTimer:
    """
    Scheduler-side timer of one entity.

    Attributes:
        entity: Entity the timer belongs to
        duration: Duration of the current run
        start_time: Time when timer was started
        state: Current timer state
        generation: Incremented on each start, stale heap entries are skipped
    """
    entity: int
    duration: float = 0.0
    start_time: float = 0.0
    state: TimerState = TimerState.STOPPED
    generation: int = 0
    starts: int = 0
    expirations: int = 0

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    def start(self, current_time: float, duration: float) -> TimerEvent:
        """
        Start the timer.

        Args:
            current_time: Current simulation time
            duration: Time until expiry

        Returns:
            Event to push onto the scheduler queue
        """
        self.start_time = current_time
        self.duration = duration
        self.state = TimerState.RUNNING
        self.generation += 1
        self.starts += 1
        return TimerEvent(
            expiry_time=self.get_expiry_time(),
            entity=self.entity,
            generation=self.generation
        )

    def stop(self):
        """Stop the timer."""
        self.state = TimerState.STOPPED

    def matches(self, event: TimerEvent) -> bool:
        """True if event is the live expiry of the current run."""
        return self.is_running and event.generation == self.generation

    def expire(self):
        """Mark the current run as fired."""
        self.state = TimerState.EXPIRED
        self.expirations += 1

    def get_remaining_time(self, current_time: float) -> float:
        """
        Get remaining time until expiration.

        Args:
            current_time: Current simulation time

        Returns:
            Remaining time (0 if expired or stopped)
        """
        if not self.is_running:
            return 0.0
        return max(0.0, self.get_expiry_time() - current_time)

    def get_expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.duration


class RetransmissionTimer:
    """
    Protocol-side handle on an entity's single shared timer.

    Tracks whether the timer is running so that start and stop requests
    reaching the scheduler are always legal, and always restarts with the
    same fixed timeout.

    Attributes:
        entity: Entity owning the timer
        services: Scheduler providing start_timer/stop_timer
        timeout: Fixed timeout duration
    """

    def __init__(self, entity: int, services, timeout: float = TIMEOUT):
        """
        Initialize retransmission timer.

        Args:
            entity: Entity owning the timer
            services: Collaborator exposing start_timer(entity, increment)
                and stop_timer(entity)
            timeout: Fixed timeout duration
        """
        self.entity = entity
        self.services = services
        self.timeout = timeout
        self.running = False

        # Statistics
        self.starts = 0
        self.stops = 0
        self.expirations = 0

    def start(self):
        """Start the timer if it is not already running."""
        if self.running:
            return
        self.services.start_timer(self.entity, self.timeout)
        self.running = True
        self.starts += 1

    def stop(self):
        """Stop the timer if it is running."""
        if not self.running:
            return
        self.services.stop_timer(self.entity)
        self.running = False
        self.stops += 1

    def restart(self):
        """Restart the timer from zero with the fixed timeout."""
        self.stop()
        self.start()

    def fired(self):
        """Record that the scheduler delivered the timeout."""
        self.running = False
        self.expirations += 1

    def reset(self):
        """
        Forget running state without talking to the scheduler.

        The owner must discard the scheduler's timer for this entity as
        well; the Simulator rebuilds its EntityTimers before calling init().
        """
        self.running = False

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'timer_starts': self.starts,
            'timer_stops': self.stops,
            'timer_expirations': self.expirations,
        }
