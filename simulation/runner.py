"""
Batch Runner for Parameter Sweep Simulations

This module implements the batch runner that executes every
(loss, corrupt) configuration of the sweep several times.
"""

import os
import csv
import time
import statistics
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

from tqdm import tqdm

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    LOSS_PROBABILITIES, CORRUPT_PROBABILITIES, RUNS_PER_CONFIGURATION,
    RNG_SEED_BASE, OUTPUT_DIR, RESULTS_CSV, SWEEP_NUM_MESSAGES,
    SWEEP_MAX_TIME, MESSAGE_INTERVAL
)
from simulation.simulator import Simulator, SimulatorConfig
from src.utils.logger import LogLevel


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int
    message_interval: float = MESSAGE_INTERVAL
    max_time: float = SWEEP_MAX_TIME


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results
    """
    try:
        config = SimulatorConfig(
            num_messages=run_config.num_messages,
            message_interval=run_config.message_interval,
            loss_prob=run_config.loss_prob,
            corrupt_prob=run_config.corrupt_prob,
            seed=run_config.seed,
            max_time=run_config.max_time,
            log_level=LogLevel.ERROR  # Minimal logging for batch runs
        )

        sim = Simulator(config)
        results = sim.run()

        # Extract key metrics
        metrics = results['metrics']
        sender = results['statistics']['sender']
        receiver = results['statistics']['receiver']

        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'throughput': metrics['throughput'],
            'efficiency': metrics['efficiency'],
            'delivery_ratio': metrics['delivery_ratio'],
            'drop_rate': metrics['drop_rate'],
            'messages_accepted': metrics['messages_accepted'],
            'messages_delivered': metrics['messages_delivered'],
            'packets_resent': sender['packets_resent'],
            'timeouts': sender['timeouts'],
            'duplicate_acks': sender['duplicate_acks'],
            'corrupted_packets': receiver['corrupted_packets'] + sender['corrupted_acks'],
            'delay_mean': metrics['delay']['mean'],
            'total_time': results['simulation_time'],
            'data_valid': results['verification']['valid'],
            'complete': results['complete'],
            'error': None
        }

    except Exception as e:
        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'delivery_ratio': 0,
            'error': str(e)
        }


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes all (loss, corrupt) combinations with multiple runs each.

    Attributes:
        loss_probs: Loss probabilities to test
        corrupt_probs: Corruption probabilities to test
        runs_per_config: Number of runs per configuration
        num_messages: Messages generated per run
    """

    def __init__(
        self,
        loss_probs: Optional[List[float]] = None,
        corrupt_probs: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = SWEEP_NUM_MESSAGES,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            loss_probs: Loss probabilities (default from config)
            corrupt_probs: Corruption probabilities (default from config)
            runs_per_config: Number of runs per (loss, corrupt) pair
            num_messages: Messages generated per run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.loss_probs = loss_probs if loss_probs is not None else LOSS_PROBABILITIES
        self.corrupt_probs = (corrupt_probs if corrupt_probs is not None
                              else CORRUPT_PROBABILITIES)
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.output_file = output_file
        self.on_progress = on_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = (len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for i, loss in enumerate(self.loss_probs):
            for j, corrupt in enumerate(self.corrupt_probs):
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run
                    seed = (RNG_SEED_BASE +
                            i * 1000 +
                            j * 100 +
                            run_id * 10000)

                    configs.append(RunConfig(
                        loss_prob=loss,
                        corrupt_prob=corrupt,
                        run_id=run_id,
                        seed=seed,
                        num_messages=self.num_messages
                    ))

        return configs

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations sequentially...")

        for config in tqdm(configs, desc="Simulations"):
            self._record(run_single_simulation(config))

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations with {max_workers} workers...")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(run_single_simulation, config): config
                for config in configs
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations"):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        if not self.results:
            print("No results to save!")
            return

        # Ensure directory exists
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # Union of keys, failed runs carry fewer columns
        fieldnames = []
        for result in self.results:
            for key in result:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        print(f"Results saved to: {filepath}")

    def get_aggregated_results(self) -> Dict:
        """
        Get aggregated results by (loss, corrupt) pair.

        Returns:
            Dictionary with aggregated statistics
        """
        aggregated = {}

        for result in self.results:
            if result.get('error'):
                continue

            key = (result['loss_prob'], result['corrupt_prob'])
            if key not in aggregated:
                aggregated[key] = {
                    'loss_prob': result['loss_prob'],
                    'corrupt_prob': result['corrupt_prob'],
                    'delivery_ratios': [],
                    'throughputs': [],
                    'resends': [],
                    'completions': []
                }

            aggregated[key]['delivery_ratios'].append(result['delivery_ratio'])
            aggregated[key]['throughputs'].append(result['throughput'])
            aggregated[key]['resends'].append(result['packets_resent'])
            aggregated[key]['completions'].append(1 if result['complete'] else 0)

        # Calculate statistics
        for key, data in aggregated.items():
            ratios = data['delivery_ratios']
            if ratios:
                data['delivery_mean'] = statistics.mean(ratios)
                data['delivery_std'] = (statistics.stdev(ratios)
                                        if len(ratios) > 1 else 0)
                data['delivery_min'] = min(ratios)
                data['delivery_max'] = max(ratios)

            if data['throughputs']:
                data['throughput_mean'] = statistics.mean(data['throughputs'])

            if data['resends']:
                data['resent_mean'] = statistics.mean(data['resends'])

            if data['completions']:
                data['completion_rate'] = statistics.mean(data['completions'])

        return aggregated

    def get_extreme_configurations(self) -> Dict:
        """
        Find the best and worst (loss, corrupt) configurations by mean delivery.

        Returns:
            Dictionary with best and worst configuration info
        """
        aggregated = self.get_aggregated_results()

        if not aggregated:
            return {'error': 'No results available'}

        def describe(key):
            data = aggregated[key]
            return {
                'loss_prob': key[0],
                'corrupt_prob': key[1],
                'mean_delivery': data.get('delivery_mean', 0),
                'delivery_std': data.get('delivery_std', 0),
                'mean_throughput': data.get('throughput_mean', 0),
                'mean_resent': data.get('resent_mean', 0),
                'completion_rate': data.get('completion_rate', 0)
            }

        def score(k):
            return aggregated[k].get('delivery_mean', 0)

        return {
            'best': describe(max(aggregated.keys(), key=score)),
            'worst': describe(min(aggregated.keys(), key=score))
        }


if __name__ == "__main__":
    # Test batch runner with small parameter space
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    # Use small test configuration
    runner = BatchRunner(
        loss_probs=[0.0, 0.1],
        corrupt_probs=[0.0, 0.1],
        runs_per_config=2,
        num_messages=50,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTest configuration:")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corruption probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    print("\nRunning simulations...")
    results = runner.run_sequential()

    runner.save_results()

    print("\nAggregated results:")
    aggregated = runner.get_aggregated_results()
    for key, data in aggregated.items():
        print(f"  loss={key[0]}, corrupt={key[1]}: "
              f"Delivery={data.get('delivery_mean', 0)*100:.1f}%, "
              f"Resent={data.get('resent_mean', 0):.1f}")

    extremes = runner.get_extreme_configurations()
    print(f"\nBest configuration: {extremes['best']}")
    print(f"Worst configuration: {extremes['worst']}")
