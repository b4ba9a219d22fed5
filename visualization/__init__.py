"""
Visualization package - Plotting and visualization tools.

Contains:
- Heatmap generation over (loss, corrupt)
"""

from .heatmap import DeliveryHeatmap

__all__ = [
    'DeliveryHeatmap'
]
