#!/usr/bin/env python3
"""
Selective Repeat ARQ Protocol Simulator - Main Entry Point

This is the main CLI interface for the ARQ protocol simulator.
It provides options for:
- Single simulation runs
- Parameter sweep over loss and corruption probabilities
- Visualization generation

Usage:
    python main.py --single --messages 100 --loss 0.1 --corrupt 0.1
    python main.py --sweep --runs 5
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    RUNS_PER_CONFIGURATION, NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB,
    MESSAGE_INTERVAL, TRACE, RESULTS_CSV, PLOTS_DIR, SWEEP_NUM_MESSAGES
)


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig

    config = SimulatorConfig(
        num_messages=args.messages,
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        message_interval=args.interval,
        seed=args.seed,
        trace=2 if args.verbose else args.trace
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Loss probability: {config.loss_prob}")
    print(f"  Corruption probability: {config.corrupt_prob}")
    print(f"  Message interval: {config.message_interval}")
    print(f"  Window size: {config.window_size}")
    print(f"  Sequence space: {config.seqspace}")
    print(f"  Timeout: {config.timeout}")
    print(f"  Trace: {config.trace}")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery Valid: {results['verification']['valid']}")
    print(f"  Simulation Time: {results['simulation_time']:.2f}")
    print(f"  Real Time: {elapsed:.2f} s")

    metrics = results['metrics']
    print(f"\nPerformance Metrics:")
    print(f"  Throughput: {metrics['throughput']:.4f} msg/t")
    print(f"  Efficiency: {metrics['efficiency'] * 100:.2f}%")
    print(f"  Delivery Ratio: {metrics['delivery_ratio'] * 100:.2f}%")

    sender = results['statistics']['sender']
    receiver = results['statistics']['receiver']
    print(f"\nSender (A):")
    print(f"  Messages Generated: {metrics['messages_generated']}")
    print(f"  Dropped (window full): {sender['window_full']}")
    print(f"  Packets Sent: {sender['packets_sent']}")
    print(f"  Packets Resent: {sender['packets_resent']}")
    print(f"  Timeouts: {sender['timeouts']}")
    print(f"  ACKs Received: {sender['total_acks_received']} "
          f"(new {sender['new_acks']}, duplicate {sender['duplicate_acks']}, "
          f"corrupted {sender['corrupted_acks']})")

    print(f"\nReceiver (B):")
    print(f"  Packets Received: {receiver['packets_received']}")
    print(f"  Corrupted: {receiver['corrupted_packets']}")
    print(f"  Duplicates: {receiver['duplicate_packets']}")
    print(f"  Outside Window: {receiver['out_of_window_packets']}")
    print(f"  ACKs Sent: {receiver['acks_sent']}")
    print(f"  Delivered: {receiver['messages_delivered']}")

    if metrics['delay']['samples'] > 0:
        print(f"\nDelivery Delay:")
        print(f"  Mean: {metrics['delay']['mean']:.2f}")
        print(f"  Min: {metrics['delay']['min']:.2f}")
        print(f"  Max: {metrics['delay']['max']:.2f}")

    return results


def run_parameter_sweep(args):
    """Run full parameter sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    # Determine parameter space
    if args.quick:
        loss_probs = [0.0, 0.1, 0.2]
        corrupt_probs = [0.0, 0.1, 0.2]
        runs = 2
        num_messages = 50
    else:
        loss_probs = None
        corrupt_probs = None
        runs = args.runs
        num_messages = args.messages or SWEEP_NUM_MESSAGES

    runner = BatchRunner(
        loss_probs=loss_probs,
        corrupt_probs=corrupt_probs,
        runs_per_config=runs,
        num_messages=num_messages,
        output_file=args.output or RESULTS_CSV
    )

    print(f"\nConfiguration:")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corruption probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runs}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Messages per run: {num_messages}")
    print(f"  Output: {args.output or RESULTS_CSV}")

    print("\nStarting parameter sweep...")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    # Save results
    runner.save_results()

    extremes = runner.get_extreme_configurations()
    if 'error' in extremes:
        print(f"\n{extremes['error']}")
        return results

    for label in ('best', 'worst'):
        point = extremes[label]
        print("\n" + "=" * 60)
        print(f"{label.upper()} CONFIGURATION")
        print("=" * 60)
        print(f"  Loss: {point['loss_prob']}")
        print(f"  Corruption: {point['corrupt_prob']}")
        print(f"  Mean Delivery: {point['mean_delivery'] * 100:.2f}%")
        print(f"  Mean Throughput: {point['mean_throughput']:.4f} msg/t")
        print(f"  Completion Rate: {point['completion_rate'] * 100:.0f}%")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return

    from visualization.heatmap import DeliveryHeatmap
    heatmap = DeliveryHeatmap(csv_file=csv_file)
    print(f"Loaded {len(heatmap.df)} results from {csv_file}")

    # Ensure output directory exists
    os.makedirs(PLOTS_DIR, exist_ok=True)

    print("\nGenerating heatmaps...")
    files = [
        heatmap.plot(
            output_file=os.path.join(PLOTS_DIR, 'delivery_heatmap.png'),
            metric='delivery_ratio'
        ),
        heatmap.plot(
            output_file=os.path.join(PLOTS_DIR, 'throughput_heatmap.png'),
            metric='throughput',
            cmap='rocket'
        ),
        heatmap.plot(
            output_file=os.path.join(PLOTS_DIR, 'resent_heatmap.png'),
            metric='packets_resent',
            cmap='mako'
        )
    ]

    print("Generating comparison plot...")
    files.append(heatmap.plot_comparison(
        output_file=os.path.join(PLOTS_DIR, 'delivery_comparison.png')
    ))

    print("\n" + "=" * 60)
    print("VISUALIZATIONS GENERATED")
    print("=" * 60)
    for path in files:
        print(f"  {path}")


def show_config(args):
    """Display current configuration."""
    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    import config as cfg

    print(f"\nProtocol Parameters:")
    print(f"  Window Size: {cfg.WINDOWSIZE}")
    print(f"  Sequence Space: {cfg.SEQSPACE}")
    print(f"  RTT: {cfg.RTT}")
    print(f"  Timeout: {cfg.TIMEOUT}")
    print(f"  Payload Size: {cfg.PAYLOAD_SIZE} bytes")

    print(f"\nChannel:")
    print(f"  Loss Probability: {cfg.LOSS_PROB}")
    print(f"  Corruption Probability: {cfg.CORRUPT_PROB}")
    print(f"  Delay: {cfg.CHANNEL_MIN_DELAY} + U(0, {cfg.CHANNEL_DELAY_SPREAD})")
    print(f"  Mean One-Way Delay: {cfg.calculate_mean_channel_delay()}")

    print(f"\nParameter Sweep:")
    print(f"  Loss Probabilities: {cfg.LOSS_PROBABILITIES}")
    print(f"  Corruption Probabilities: {cfg.CORRUPT_PROBABILITIES}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: "
          f"{len(cfg.LOSS_PROBABILITIES) * len(cfg.CORRUPT_PROBABILITIES) * cfg.RUNS_PER_CONFIGURATION}")

    print(f"\nRound-trip success probability:")
    for loss in cfg.LOSS_PROBABILITIES:
        row = "  ".join(
            f"{cfg.calculate_round_trip_success(loss, c):.3f}"
            for c in cfg.CORRUPT_PROBABILITIES
        )
        print(f"  loss={loss:<5} {row}")


def main():
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Protocol Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation:
    python main.py --single --messages 100 --loss 0.1 --corrupt 0.1

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Full parameter sweep:
    python main.py --sweep --runs 5

  Parallel parameter sweep:
    python main.py --sweep --parallel --workers 4

  Generate visualizations:
    python main.py --visualize

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Single simulation options
    parser.add_argument('--messages', '-n', type=int, default=None,
                        help=f'Number of messages (default: {NUM_MESSAGES}, '
                             f'{SWEEP_NUM_MESSAGES} per sweep run)')
    parser.add_argument('--loss', '-l', type=float, default=LOSS_PROB,
                        help=f'Packet loss probability (default: {LOSS_PROB})')
    parser.add_argument('--corrupt', '-c', type=float, default=CORRUPT_PROB,
                        help=f'Packet corruption probability (default: {CORRUPT_PROB})')
    parser.add_argument('--interval', '-i', type=float, default=MESSAGE_INTERVAL,
                        help=f'Average time between messages (default: {MESSAGE_INTERVAL})')
    parser.add_argument('--trace', '-t', type=int, default=TRACE,
                        help=f'Trace level (default: {TRACE})')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    for name in ('loss', 'corrupt'):
        value = getattr(args, name)
        if not 0.0 <= value <= 1.0:
            parser.error(f"--{name} must be within [0, 1]")

    # Execute selected mode
    if args.single:
        if args.messages is None:
            args.messages = NUM_MESSAGES
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.visualize:
        generate_visualizations(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
