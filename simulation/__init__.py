"""
Simulation package - Main simulation engine and runners.

Contains:
- Discrete-event emulator driving both ARQ entities
- Batch runner for parameter sweeps
- Parameter sweep logic
"""

from .simulator import Simulator, SimulatorConfig, EventType
from .runner import BatchRunner
from .parameter_sweep import ParameterSweep

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'EventType',
    'BatchRunner',
    'ParameterSweep'
]
