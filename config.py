"""
Configuration file for the Selective Repeat ARQ Protocol Simulator.
Contains the fixed protocol parameters and the emulator defaults.
"""

import os

# =============================================================================
# PROTOCOL PARAMETERS (fixed, not configurable at runtime)
# =============================================================================

# Round trip time. The timeout below is derived from it.
RTT = 16.0

# Maximum number of buffered unacknowledged packets
WINDOWSIZE = 6

# Sequence space; must be at least WINDOWSIZE + 1
SEQSPACE = 13

# Fixed retransmission timeout (1.5 x RTT = 24 time units)
TIMEOUT = 1.5 * RTT

# Message and packet payload length (bytes)
PAYLOAD_SIZE = 20

# Wire value of a header field that is not in use
NOTINUSE = -1

# Payload byte used to fill acknowledgment packets
ACK_FILL_BYTE = ord('0')

# =============================================================================
# EMULATOR DEFAULTS
# =============================================================================

# Number of messages generated by the application at A
NUM_MESSAGES = 1000

# Packet loss probability (per packet, per direction)
LOSS_PROB = 0.0

# Packet corruption probability (per packet, per direction)
CORRUPT_PROB = 0.0

# Average time between messages handed down by the application
MESSAGE_INTERVAL = 10.0

# Trace level: 0 = quiet, 1 = protocol events, 2+ = everything
TRACE = 1

# Minimum and spread of the one-way channel delay
CHANNEL_MIN_DELAY = 1.0
CHANNEL_DELAY_SPREAD = 9.0

# Value written into a header field the channel corrupts
CORRUPTED_FIELD_VALUE = 999999

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

# Loss probabilities to evaluate
LOSS_PROBABILITIES = [0.0, 0.05, 0.1, 0.2, 0.3]

# Corruption probabilities to evaluate
CORRUPT_PROBABILITIES = [0.0, 0.05, 0.1, 0.2, 0.3]

# Number of simulation runs per (loss, corrupt) pair
RUNS_PER_CONFIGURATION = 5

# Messages per sweep run
SWEEP_NUM_MESSAGES = 200

# Simulated time limit of a sweep run
SWEEP_MAX_TIME = 20_000.0

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + run offset)
RNG_SEED_BASE = 42

# Simulation time limit (time units) - failsafe
MAX_SIMULATION_TIME = 100_000.0

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

# Results CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS (calculated from fixed parameters)
# =============================================================================

def trace_to_log_level(trace):
    """Map an emulator trace level onto a logger level."""
    if trace <= 0:
        return LOG_LEVEL_WARNING
    if trace == 1:
        return LOG_LEVEL_INFO
    return LOG_LEVEL_DEBUG

def calculate_mean_channel_delay():
    """Mean one-way delay of an uncongested channel."""
    return CHANNEL_MIN_DELAY + CHANNEL_DELAY_SPREAD / 2

def calculate_round_trip_success(loss_prob, corrupt_prob):
    """
    Probability that a data packet and its ack both survive.

    P = ((1 - loss) * (1 - corrupt))^2
    """
    one_way = (1 - loss_prob) * (1 - corrupt_prob)
    return one_way * one_way


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOWSIZE}")
    print(f"  Sequence Space: {SEQSPACE}")
    print(f"  RTT: {RTT}")
    print(f"  Timeout: {TIMEOUT}")
    print(f"  Payload Size: {PAYLOAD_SIZE} bytes")

    print(f"\nEmulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss Probability: {LOSS_PROB}")
    print(f"  Corruption Probability: {CORRUPT_PROB}")
    print(f"  Message Interval: {MESSAGE_INTERVAL}")
    print(f"  Mean Channel Delay: {calculate_mean_channel_delay()}")

    print(f"\nParameter Sweep:")
    print(f"  Loss Probabilities: {LOSS_PROBABILITIES}")
    print(f"  Corruption Probabilities: {CORRUPT_PROBABILITIES}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: "
          f"{len(LOSS_PROBABILITIES) * len(CORRUPT_PROBABILITIES) * RUNS_PER_CONFIGURATION}")
