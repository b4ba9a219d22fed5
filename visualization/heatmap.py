"""
Delivery Heatmap Visualization

This module generates 2D heatmaps showing a sweep metric as a function of
(loss probability, corruption probability).
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR, calculate_round_trip_success


METRIC_LABELS = {
    'delivery_ratio': 'Delivered / Accepted',
    'throughput': 'Throughput (msg / time unit)',
    'efficiency': 'Delivered / Data Packets Sent',
    'packets_resent': 'Packets Resent',
    'delay_mean': 'Mean Delivery Delay'
}


class DeliveryHeatmap:
    """
    Generates 2D heatmaps of a metric over (loss, corrupt).

    Rows are loss probabilities (largest at top), columns are corruption
    probabilities; each cell is the mean over runs.
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.df = pd.DataFrame(results)
        elif csv_file:
            self.df = pd.read_csv(csv_file)
        else:
            self.df = pd.DataFrame()

        # Failed runs carry an error message and no metrics
        if 'error' in self.df.columns:
            self.df = self.df[self.df['error'].isna()]

    @property
    def loss_probs(self) -> List[float]:
        if self.df.empty:
            return []
        return sorted(self.df['loss_prob'].unique())

    @property
    def corrupt_probs(self) -> List[float]:
        if self.df.empty:
            return []
        return sorted(self.df['corrupt_prob'].unique())

    def create_matrix(self, metric: str = 'delivery_ratio') -> pd.DataFrame:
        """
        Pivot mean metric values into a (loss x corrupt) table.

        Args:
            metric: Result column to aggregate

        Returns:
            DataFrame indexed by loss_prob (descending), columns corrupt_prob
        """
        if self.df.empty:
            raise ValueError("No results to plot")
        if metric not in self.df.columns:
            raise ValueError(f"Unknown metric: {metric}")

        matrix = self.df.pivot_table(
            index='loss_prob',
            columns='corrupt_prob',
            values=metric,
            aggfunc='mean'
        )
        # Larger loss at top
        return matrix.sort_index(ascending=False)

    def theoretical_matrix(self) -> pd.DataFrame:
        """Round-trip success probability for every swept point."""
        losses = sorted(self.loss_probs, reverse=True)
        corrupts = self.corrupt_probs
        values = np.array([
            [calculate_round_trip_success(l, c) for c in corrupts]
            for l in losses
        ])
        return pd.DataFrame(values, index=losses, columns=corrupts)

    def _draw(self, matrix: pd.DataFrame, ax, label: str, cmap: str, show_values: bool):
        sns.heatmap(
            matrix,
            annot=show_values,
            fmt='.3f',
            cmap=cmap,
            ax=ax,
            cbar_kws={'label': label}
        )
        ax.set_xlabel('Corruption Probability', fontsize=12)
        ax.set_ylabel('Loss Probability', fontsize=12)

    def plot(
        self,
        output_file: Optional[str] = None,
        metric: str = 'delivery_ratio',
        title: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 8),
        cmap: str = "viridis",
        show_values: bool = True
    ) -> str:
        """
        Generate and save heatmap.

        Args:
            output_file: Output file path (auto-generated if None)
            metric: Result column to plot
            title: Plot title
            figsize: Figure size (width, height)
            cmap: Colormap name
            show_values: Show values in cells

        Returns:
            Path to saved figure
        """
        matrix = self.create_matrix(metric)
        label = METRIC_LABELS.get(metric, metric)

        fig, ax = plt.subplots(figsize=figsize)
        self._draw(matrix, ax, label, cmap, show_values)
        ax.set_title(title or f"{label} vs Loss and Corruption",
                     fontsize=14, fontweight='bold')

        plt.tight_layout()

        # Save figure
        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Heatmap saved to: {output_file}")
        return output_file

    def plot_comparison(
        self,
        output_file: Optional[str] = None,
        metric: str = 'delivery_ratio',
        titles: Tuple[str, str] = ("Measured", "Round-Trip Success Probability")
    ) -> str:
        """
        Generate side-by-side heatmaps of a measured metric and the
        theoretical per-packet round-trip success probability.

        Args:
            output_file: Output file path
            metric: Measured result column
            titles: Titles for each subplot

        Returns:
            Path to saved figure
        """
        measured = self.create_matrix(metric)
        theory = self.theoretical_matrix()

        fig, axes = plt.subplots(1, 2, figsize=(16, 6))
        self._draw(measured, axes[0], METRIC_LABELS.get(metric, metric), 'viridis', True)
        axes[0].set_title(titles[0])
        self._draw(theory, axes[1], 'P(data and ack intact)', 'magma', True)
        axes[1].set_title(titles[1])

        plt.suptitle("Selective Repeat over a Lossy Channel",
                     fontsize=14, fontweight='bold')
        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, f'{metric}_comparison.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        return output_file


if __name__ == "__main__":
    print("=" * 60)
    print("HEATMAP GENERATOR TEST")
    print("=" * 60)

    rng = np.random.default_rng(0)
    test_results = []
    for loss in [0.0, 0.1, 0.2, 0.3]:
        for corrupt in [0.0, 0.1, 0.2, 0.3]:
            for run in range(3):
                base = calculate_round_trip_success(loss, corrupt)
                test_results.append({
                    'loss_prob': loss,
                    'corrupt_prob': corrupt,
                    'run_id': run,
                    'delivery_ratio': float(np.clip(base + rng.normal(0, 0.02), 0, 1))
                })

    print(f"Generated {len(test_results)} test results")

    heatmap = DeliveryHeatmap(results=test_results)
    output = heatmap.plot(title="Test Delivery Heatmap")
    print(f"Test complete: {output}")
