"""
Parameter Sweep Configuration

This module defines the channel parameter space for the exhaustive search
and provides utilities for parameter sweep analysis.
"""

import os
import sys
from typing import List, Dict, Tuple, Optional
from dataclasses import dataclass
import csv
import statistics

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    LOSS_PROBABILITIES, CORRUPT_PROBABILITIES, RUNS_PER_CONFIGURATION,
    calculate_round_trip_success
)


@dataclass
class ParameterPoint:
    """A single point in the parameter space."""
    loss_prob: float
    corrupt_prob: float

    @property
    def key(self) -> Tuple[float, float]:
        return (self.loss_prob, self.corrupt_prob)


class ParameterSweep:
    """
    Parameter sweep configuration and analysis.

    Defines the parameter space:
    - loss ∈ {0, 0.05, 0.1, 0.2, 0.3}
    - corrupt ∈ {0, 0.05, 0.1, 0.2, 0.3}
    - 5 runs per configuration
    - Total = 5 × 5 × 5 = 125 simulations
    """

    def __init__(
        self,
        loss_probs: Optional[List[float]] = None,
        corrupt_probs: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION
    ):
        """
        Initialize parameter sweep.

        Args:
            loss_probs: List of loss probabilities
            corrupt_probs: List of corruption probabilities
            runs_per_config: Number of runs per configuration
        """
        self.loss_probs = loss_probs if loss_probs is not None else LOSS_PROBABILITIES
        self.corrupt_probs = (corrupt_probs if corrupt_probs is not None
                              else CORRUPT_PROBABILITIES)
        self.runs_per_config = runs_per_config

        for p in list(self.loss_probs) + list(self.corrupt_probs):
            if not 0.0 <= p <= 1.0:
                raise ValueError(f"Probability must be within [0, 1], got {p}")

    @property
    def total_configurations(self) -> int:
        """Total number of (loss, corrupt) configurations."""
        return len(self.loss_probs) * len(self.corrupt_probs)

    @property
    def total_simulations(self) -> int:
        """Total number of simulation runs."""
        return self.total_configurations * self.runs_per_config

    def get_all_points(self) -> List[ParameterPoint]:
        """Get all parameter points."""
        points = []
        for loss in self.loss_probs:
            for corrupt in self.corrupt_probs:
                points.append(ParameterPoint(loss, corrupt))
        return points

    @staticmethod
    def round_trip_success(loss_prob: float, corrupt_prob: float) -> float:
        """
        Probability that one transmission and its ack both arrive intact.

        P = ((1 - loss) * (1 - corrupt))^2
        """
        return calculate_round_trip_success(loss_prob, corrupt_prob)

    def expected_transmissions(self, loss_prob: float, corrupt_prob: float) -> float:
        """
        Expected transmissions per packet until it is acknowledged.

        Geometric in the round-trip success probability; infinite when
        nothing ever gets through.
        """
        p = self.round_trip_success(loss_prob, corrupt_prob)
        if p <= 0:
            return float('inf')
        return 1.0 / p

    def theoretical_table(self) -> List[Dict]:
        """Round-trip success and expected transmissions for every point."""
        return [
            {
                'loss_prob': point.loss_prob,
                'corrupt_prob': point.corrupt_prob,
                'round_trip_success': self.round_trip_success(*point.key),
                'expected_transmissions': self.expected_transmissions(*point.key)
            }
            for point in self.get_all_points()
        ]

    @staticmethod
    def load_results(filepath: str) -> List[Dict]:
        """
        Load results from CSV file.

        Args:
            filepath: Path to CSV file

        Returns:
            List of result dictionaries
        """
        results = []
        with open(filepath, 'r') as f:
            reader = csv.DictReader(f)
            for row in reader:
                # Convert numeric fields
                for key in row:
                    value = row[key]
                    if value in ('True', 'False'):
                        row[key] = value == 'True'
                        continue
                    try:
                        if '.' in value or 'e' in value or 'inf' in value:
                            row[key] = float(value)
                        else:
                            row[key] = int(value)
                    except (ValueError, TypeError):
                        pass
                results.append(row)
        return results

    @staticmethod
    def create_delivery_matrix(
        results: List[Dict],
        metric: str = 'delivery_ratio'
    ) -> Dict:
        """
        Create a matrix of mean metric values.

        Args:
            results: List of result dictionaries
            metric: Result column to aggregate

        Returns:
            Dictionary keyed by (loss, corrupt) with mean, std and n
        """
        # Group by (loss, corrupt)
        grouped = {}
        for r in results:
            key = (r['loss_prob'], r['corrupt_prob'])
            if key not in grouped:
                grouped[key] = []
            value = r.get(metric)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                grouped[key].append(value)

        # Calculate means
        matrix = {}
        for key, values in grouped.items():
            if values:
                matrix[key] = {
                    'mean': statistics.mean(values),
                    'std': statistics.stdev(values) if len(values) > 1 else 0,
                    'n': len(values)
                }

        return matrix


if __name__ == "__main__":
    # Document parameter sweep
    print("=" * 60)
    print("PARAMETER SWEEP CONFIGURATION")
    print("=" * 60)

    sweep = ParameterSweep()

    print(f"\nParameter Space:")
    print(f"  Loss probabilities: {sweep.loss_probs}")
    print(f"  Corruption probabilities: {sweep.corrupt_probs}")
    print(f"  Runs per config: {sweep.runs_per_config}")
    print(f"  Total configurations: {sweep.total_configurations}")
    print(f"  Total simulations: {sweep.total_simulations}")

    print("\n" + "=" * 60)
    print("THEORETICAL CALCULATIONS")
    print("=" * 60)

    for row in sweep.theoretical_table():
        print(f"  loss={row['loss_prob']:.2f} corrupt={row['corrupt_prob']:.2f}: "
              f"P(success)={row['round_trip_success']:.3f}, "
              f"E[tx]={row['expected_transmissions']:.2f}")
