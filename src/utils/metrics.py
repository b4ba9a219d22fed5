"""
Metrics Collection and Calculation

This module provides utilities for calculating and tracking
performance metrics including throughput, efficiency and delivery delay.
"""

from dataclasses import dataclass
from typing import List, Optional, Dict
import statistics


@dataclass
class MetricsSample:
    """Single sample of metrics at a point in time."""
    timestamp: float
    messages_generated: int = 0
    messages_delivered: int = 0
    data_packets_offered: int = 0
    ack_packets_offered: int = 0


class MetricsCollector:
    """
    Collects and calculates performance metrics for the simulation.

    Primary metric: Throughput = Delivered Messages / Simulated Time

    Attributes:
        start_time: Simulation start time
        end_time: Simulation end time
    """

    def __init__(self, sample_interval: float = 1000.0):
        """
        Initialize metrics collector.

        Args:
            sample_interval: Simulated time between periodic samples
        """
        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Application counters
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_dropped = 0
        self.messages_delivered = 0

        # Channel counters
        self.data_packets_offered = 0
        self.ack_packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0

        # Delivery delay samples (generation to delivery)
        self.delay_samples: List[float] = []

        # Per-interval samples
        self.samples: List[MetricsSample] = []
        self.sample_interval = sample_interval
        self.last_sample_time = 0.0

        # Window occupancy tracking
        self.window_occupancy_samples: List[float] = []

    def start(self, time: float):
        """
        Mark simulation start.

        Args:
            time: Start time
        """
        self.start_time = time
        self.last_sample_time = time

    def finish(self, time: float):
        """
        Mark simulation end.

        Args:
            time: End time
        """
        self.end_time = time
        self._take_sample(time)

    def record_message_generated(self, accepted: bool):
        """Record a message handed to the sender and whether it was accepted."""
        self.messages_generated += 1
        if accepted:
            self.messages_accepted += 1
        else:
            self.messages_dropped += 1

    def record_message_delivered(self, delay: Optional[float] = None):
        """
        Record a message delivered in order to the application.

        Args:
            delay: Time from generation to delivery, if known
        """
        self.messages_delivered += 1
        if delay is not None:
            self.delay_samples.append(delay)

    def record_packet_offered(self, is_ack: bool):
        """Record a packet handed to the channel."""
        if is_ack:
            self.ack_packets_offered += 1
        else:
            self.data_packets_offered += 1

    def record_packet_lost(self):
        """Record packet lost by the channel."""
        self.packets_lost += 1

    def record_packet_corrupted(self):
        """Record packet corrupted by the channel."""
        self.packets_corrupted += 1

    def record_window_occupancy(self, used_slots: int, total_slots: int):
        """
        Record window occupancy.

        Args:
            used_slots: Number of slots in use
            total_slots: Total window size
        """
        if total_slots > 0:
            self.window_occupancy_samples.append(used_slots / total_slots)

    def _take_sample(self, time: float):
        """Take a periodic sample of metrics."""
        self.samples.append(MetricsSample(
            timestamp=time,
            messages_generated=self.messages_generated,
            messages_delivered=self.messages_delivered,
            data_packets_offered=self.data_packets_offered,
            ack_packets_offered=self.ack_packets_offered
        ))

    def update(self, current_time: float):
        """
        Update metrics with current time.

        Args:
            current_time: Current simulation time
        """
        if current_time - self.last_sample_time >= self.sample_interval:
            self._take_sample(current_time)
            self.last_sample_time = current_time

    @property
    def total_time(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def calculate_throughput(self) -> float:
        """
        Calculate throughput.

        Returns:
            Delivered messages per unit of simulated time
        """
        if self.total_time <= 0:
            return 0.0
        return self.messages_delivered / self.total_time

    def calculate_efficiency(self) -> float:
        """
        Calculate transmission efficiency.

        Efficiency = Messages Delivered / Data Packets Offered

        Returns:
            Efficiency ratio (0-1)
        """
        if self.data_packets_offered <= 0:
            return 0.0
        return self.messages_delivered / self.data_packets_offered

    def calculate_delivery_ratio(self) -> float:
        """Delivered messages / accepted messages."""
        if self.messages_accepted <= 0:
            return 0.0
        return self.messages_delivered / self.messages_accepted

    def calculate_drop_rate(self) -> float:
        """Messages refused by a full window / messages generated."""
        if self.messages_generated <= 0:
            return 0.0
        return self.messages_dropped / self.messages_generated

    def calculate_loss_rate(self) -> float:
        """Packets lost / packets offered, both directions."""
        total = self.data_packets_offered + self.ack_packets_offered
        if total <= 0:
            return 0.0
        return self.packets_lost / total

    def calculate_corruption_rate(self) -> float:
        """Packets corrupted / packets offered, both directions."""
        total = self.data_packets_offered + self.ack_packets_offered
        if total <= 0:
            return 0.0
        return self.packets_corrupted / total

    def get_delay_statistics(self) -> Dict[str, float]:
        """
        Get delivery delay statistics.

        Returns:
            Dictionary with min, max, mean, median, stdev delay
        """
        if not self.delay_samples:
            return {
                'min': 0, 'max': 0, 'mean': 0,
                'median': 0, 'stdev': 0, 'samples': 0
            }

        return {
            'min': min(self.delay_samples),
            'max': max(self.delay_samples),
            'mean': statistics.mean(self.delay_samples),
            'median': statistics.median(self.delay_samples),
            'stdev': statistics.stdev(self.delay_samples) if len(self.delay_samples) > 1 else 0,
            'samples': len(self.delay_samples)
        }

    def get_window_occupancy_stats(self) -> Dict[str, float]:
        """
        Get window occupancy statistics.

        Returns:
            Dictionary with occupancy stats
        """
        if not self.window_occupancy_samples:
            return {'mean': 0, 'max': 0, 'min': 0}

        return {
            'mean': statistics.mean(self.window_occupancy_samples),
            'max': max(self.window_occupancy_samples),
            'min': min(self.window_occupancy_samples)
        }

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        return {
            # Time
            'total_time': self.total_time,
            'start_time': self.start_time,
            'end_time': self.end_time,

            # Primary metric
            'throughput': self.calculate_throughput(),

            # Secondary metrics
            'efficiency': self.calculate_efficiency(),
            'delivery_ratio': self.calculate_delivery_ratio(),
            'drop_rate': self.calculate_drop_rate(),

            # Application counts
            'messages_generated': self.messages_generated,
            'messages_accepted': self.messages_accepted,
            'messages_dropped': self.messages_dropped,
            'messages_delivered': self.messages_delivered,

            # Channel counts
            'data_packets_offered': self.data_packets_offered,
            'ack_packets_offered': self.ack_packets_offered,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'loss_rate': self.calculate_loss_rate(),
            'corruption_rate': self.calculate_corruption_rate(),

            # Delay
            'delay': self.get_delay_statistics(),

            # Window occupancy
            'window_occupancy': self.get_window_occupancy_stats()
        }

    def to_csv_row(self) -> Dict:
        """
        Get metrics as a flat dictionary suitable for CSV export.

        Returns:
            Dictionary with flattened metrics
        """
        summary = self.get_summary()
        delay = summary.pop('delay')
        occupancy = summary.pop('window_occupancy')

        # Flatten nested dicts
        flat = {**summary}
        for key, value in delay.items():
            flat[f'delay_{key}'] = value
        for key, value in occupancy.items():
            flat[f'window_occupancy_{key}'] = value

        return flat

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_dropped = 0
        self.messages_delivered = 0
        self.data_packets_offered = 0
        self.ack_packets_offered = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.delay_samples.clear()
        self.samples.clear()
        self.window_occupancy_samples.clear()
        self.last_sample_time = 0.0
