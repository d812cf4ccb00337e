import logging
import os
from datetime import datetime
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.patches import Rectangle
from matplotlib.sankey import Sankey

from .comparison import step_breakdown
from .config import PROJECT_ROOT
from .models import ComparisonResult

logger = logging.getLogger(__name__)

report_directory = os.path.join(PROJECT_ROOT, 'reports')

METRIC_COLUMNS = ["Energy (kWh)", "Water (kg)", "Emissions (kgCO2e)"]
SOURCE_COLUMNS = ["Emissions: Energy", "Emissions: Materials", "Emissions: Water"]
# Flows smaller than this share of all emissions are left out of the Sankey diagrams.
SANKEY_MIN_SHARE = 1e-3


class ExportError(RuntimeError):
    """Raised when a chart or document cannot be produced."""


# ============================================================================
# VISUALIZER CLASS
# ============================================================================

class Visualizer:
    def __init__(self, output_dir: Optional[str] = None):
        """
        Charts for a ComparisonResult. Files go to output_dir, or to a
        timestamped folder under reports/compare when not given.
        """
        self._setup_style()
        self.session_dir = output_dir or self._create_session_dir()
        os.makedirs(self.session_dir, exist_ok=True)

    def _setup_style(self):
        """Configure matplotlib for clean report plots."""
        plt.rcParams.update(plt.rcParamsDefault)
        plt.rcParams.update({
            'font.family': 'sans-serif',
            'font.sans-serif': ['Arial', 'Helvetica', 'DejaVu Sans'],
            'font.size': 11,
            'axes.titlesize': 15,
            'axes.titleweight': 'bold',
            'axes.labelsize': 12,
            'axes.spines.top': False,
            'axes.spines.right': False,
            'grid.color': '#E0E0E0',
            'grid.linestyle': ':',
            'axes.axisbelow': True,
            'text.color': '#2C3E50',
            'axes.labelcolor': '#2C3E50',
        })
        self.colors = {
            'A': '#1F77B4',
            'B': '#FF7F0E',
            'Energy': '#F4B400',
            'Materials': '#8E44AD',
            'Water': '#3498DB',
            'total': '#5D6D7E',
            'text': '#2C3E50',
        }

    def _create_session_dir(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return os.path.join(report_directory, "compare", timestamp)

    def get_save_path(self, filename: str) -> str:
        return os.path.join(self.session_dir, filename)

    def _save(self, fig, filename: str) -> str:
        filepath = self.get_save_path(filename)
        try:
            fig.savefig(filepath, dpi=200, bbox_inches='tight')
        except (OSError, ValueError) as e:
            raise ExportError(f"Could not save {filename}: {e}") from e
        finally:
            plt.close(fig)
        logger.info(f"   [Plot] Saved {filename} to: {filepath}")
        return filepath

    # ============================================================================
    # FIGURES
    # ============================================================================

    def figure_grouped_totals(self, result: ComparisonResult):
        """Grouped bars: one group per metric, one bar per process."""
        metrics = ["Energy\n(kWh)", "Water\n(kg)", "Emissions\n(kgCO2e)"]
        a = [result.totals_a.energy, result.totals_a.water, result.totals_a.emissions]
        b = [result.totals_b.energy, result.totals_b.water, result.totals_b.emissions]

        x = np.arange(len(metrics))
        width = 0.36
        fig, ax = plt.subplots(figsize=(10, 6), dpi=120)
        bars_a = ax.bar(x - width / 2, a, width, label='Process A', color=self.colors['A'])
        bars_b = ax.bar(x + width / 2, b, width, label='Process B', color=self.colors['B'])
        for bars in (bars_a, bars_b):
            for bar in bars:
                ax.annotate(f"{bar.get_height():.2f}",
                            (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                            ha='center', va='bottom', fontsize=9, color=self.colors['text'])
        ax.set_xticks(x)
        ax.set_xticklabels(metrics)
        ax.axhline(0, color='#999999', linewidth=0.8)
        ax.grid(True, axis='y')
        ax.legend(frameon=False)
        ax.set_title("Process A vs Process B", loc='left')
        fig.tight_layout()
        return fig

    def figure_step_heatmap(self, result: ComparisonResult):
        """Step x metric heatmap, colour normalised per metric, annotated with values."""
        df = step_breakdown(result)
        if df.empty:
            return None
        values = df[METRIC_COLUMNS].to_numpy(dtype=float)
        span = np.abs(values).max(axis=0)
        span[span == 0] = 1.0
        normalised = values / span

        fig, ax = plt.subplots(figsize=(8, max(3, 0.5 * len(df) + 1.5)), dpi=120)
        im = ax.imshow(normalised, cmap='YlOrRd', aspect='auto', vmin=min(0.0, normalised.min()), vmax=1.0)
        ax.set_xticks(range(len(METRIC_COLUMNS)))
        ax.set_xticklabels(METRIC_COLUMNS)
        ax.set_yticks(range(len(df)))
        ax.set_yticklabels(df["Label"])
        ax.grid(False)
        for i in range(values.shape[0]):
            for j in range(values.shape[1]):
                ax.text(j, i, f"{values[i, j]:.2f}", ha='center', va='center', fontsize=9)
        cbar = fig.colorbar(im, ax=ax, shrink=0.8)
        cbar.set_label("Share of largest step", fontweight='bold')
        ax.set_title("Step impact heatmap", loc='left', pad=12)
        fig.tight_layout()
        return fig

    def figure_sunburst(self, result: ComparisonResult):
        """Nested rings: process -> step -> emissions source."""
        df = step_breakdown(result)
        if df.empty or df["Emissions (kgCO2e)"].sum() <= 0:
            return None

        process_vals, process_colors = [], []
        for name in ("A", "B"):
            process_vals.append(df.loc[df["Process"] == name, "Emissions (kgCO2e)"].sum())
            process_colors.append(self.colors[name])

        step_vals = df["Emissions (kgCO2e)"].tolist()
        step_colors = [self.colors[p] for p in df["Process"]]
        step_labels = [lbl if v > 0 else "" for lbl, v in zip(df["Label"], step_vals)]

        source_vals, source_colors = [], []
        for _, row in df.iterrows():
            for col in SOURCE_COLUMNS:
                source_vals.append(row[col])
                source_colors.append(self.colors[col.split(": ")[1]])

        fig, ax = plt.subplots(figsize=(9, 9), dpi=120)
        ring = dict(width=0.3, edgecolor='white')
        ax.pie(process_vals, radius=0.4, colors=process_colors, labels=["A", "B"],
               labeldistance=0.45, wedgeprops=ring, startangle=90, counterclock=False)
        ax.pie(step_vals, radius=0.7, colors=step_colors, labels=step_labels, labeldistance=0.75,
               wedgeprops=dict(ring, alpha=0.75), startangle=90, counterclock=False, textprops={'fontsize': 8})
        ax.pie(source_vals, radius=1.0, colors=source_colors, wedgeprops=ring,
               startangle=90, counterclock=False)
        handles = [Rectangle((0, 0), 1, 1, color=self.colors[s]) for s in ("Energy", "Materials", "Water")]
        ax.legend(handles, ["Energy", "Materials", "Water"], loc='lower right', frameon=False)
        ax.set(aspect='equal')
        ax.set_title("Emissions: process → step → source", loc='left')
        return fig

    def _sankey(self, ax, grand: float) -> Sankey:
        """Sankey drawing flows given as shares of `grand`, labelled in kgCO2e."""
        return Sankey(
            ax=ax, scale=1.0, unit="", format=lambda share: f"{abs(share) * grand:.2f} kgCO2e",
            gap=0.3, offset=0.25, margin=0.3, tolerance=SANKEY_MIN_SHARE / 10,
        )

    def figure_flow_steps_to_total(self, result: ComparisonResult):
        """Sankey of emissions: step -> process -> total."""
        df = step_breakdown(result)
        df = df[df["Emissions (kgCO2e)"] > 0]
        grand = df["Emissions (kgCO2e)"].sum()
        if df.empty or grand <= 0:
            return None
        shares = {}
        for name in ("A", "B"):
            share = df.loc[df["Process"] == name, "Emissions (kgCO2e)"].sum() / grand
            if share >= SANKEY_MIN_SHARE:
                shares[name] = share
        names = list(shares)

        fig, ax = plt.subplots(figsize=(12, 7), dpi=120)
        sankey = self._sankey(ax, grand)
        # Diagram 0 is the total; each process feeds one of its inputs.
        sankey.add(
            flows=[shares[n] for n in names] + [-sum(shares.values())],
            orientations=0, labels=[None] * len(names) + ["Total"],
            patchlabel="Total", facecolor=self.colors['total'], alpha=0.85, lw=0,
        )
        for index, name in enumerate(names):
            rows = df[df["Process"] == name]
            flows = [v / grand for v in rows["Emissions (kgCO2e)"]] + [-shares[name]]
            sankey.add(
                flows=flows, orientations=0, labels=list(rows["Label"]) + [None],
                prior=0, connect=(index, len(flows) - 1),
                patchlabel=f"Process {name}", facecolor=self.colors[name], alpha=0.85, lw=0,
            )
        sankey.finish()
        ax.axis('off')
        ax.set_title("Emissions flow: step → process → total", loc='left')
        return fig

    def figure_flow_sources_to_steps(self, result: ComparisonResult):
        """Sankey of emissions per process: source category -> process -> step."""
        df = step_breakdown(result)
        df = df[df["Emissions (kgCO2e)"] > 0]
        grand = df["Emissions (kgCO2e)"].sum()
        if df.empty or grand <= 0:
            return None
        panels = [
            (name, totals) for name, totals in (("A", result.totals_a), ("B", result.totals_b))
            if totals.emissions / grand >= SANKEY_MIN_SHARE
        ]

        fig, axes = plt.subplots(len(panels), 1, figsize=(12, 5 * len(panels)), dpi=120, squeeze=False)
        for ax, (name, totals) in zip(axes[:, 0], panels):
            sources = [
                ("Energy", totals.emissions_energy),
                ("Materials", totals.emissions_materials),
                ("Water", totals.emissions_water),
            ]
            rows = df[df["Process"] == name]
            flows = [v / grand for _, v in sources] + [-v / grand for v in rows["Emissions (kgCO2e)"]]
            labels = [source for source, _ in sources] + list(rows["Label"])
            sankey = self._sankey(ax, grand)
            sankey.add(flows=flows, orientations=0, labels=labels,
                       patchlabel=f"Process {name}", facecolor=self.colors[name], alpha=0.85, lw=0)
            sankey.finish()
            ax.axis('off')
        fig.suptitle("Emissions flow: source → process → step", x=0.02, ha='left', fontweight='bold')
        return fig

    # ============================================================================
    # OUTPUT
    # ============================================================================

    def _figures(self, result: ComparisonResult) -> List[Tuple[str, object]]:
        builders = [
            ("totals_grouped.png", self.figure_grouped_totals),
            ("step_heatmap.png", self.figure_step_heatmap),
            ("emissions_sunburst.png", self.figure_sunburst),
            ("flow_steps_to_total.png", self.figure_flow_steps_to_total),
            ("flow_sources_to_steps.png", self.figure_flow_sources_to_steps),
        ]
        figures = []
        for filename, build in builders:
            fig = build(result)
            if fig is None:
                logger.info(f"   [Plot] Skipped {filename}: nothing to draw")
                continue
            figures.append((filename, fig))
        return figures

    def generate_all_plots(self, result: ComparisonResult) -> List[str]:
        """Save every chart as PNG and return the file paths."""
        return [self._save(fig, filename) for filename, fig in self._figures(result)]

    def export_pdf(self, result: ComparisonResult, filename: str = "comparison.pdf") -> str:
        """All charts in a single multi-page PDF."""
        filepath = self.get_save_path(filename)
        figures = self._figures(result)
        if not figures:
            raise ExportError("Nothing to export: both processes are empty")
        try:
            with PdfPages(filepath) as pdf:
                for _, fig in figures:
                    pdf.savefig(fig, bbox_inches='tight')
        except (OSError, ValueError) as e:
            raise ExportError(f"Could not write {filepath}: {e}") from e
        finally:
            for _, fig in figures:
                plt.close(fig)
        logger.info(f"   [Export] Saved PDF to: {filepath}")
        return filepath
